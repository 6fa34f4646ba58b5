"""habit-sync CLI.

Usage:
    habit-sync habit add "Drink Water"     Add a habit
    habit-sync habit list                  List habits
    habit-sync sync now                    Replay queued writes and pull
    habit-sync account sign-in <account>   Sign in, merging device habits
    habit-sync serve                       Run the reference document server
"""

from habit_sync.cli.main import app, main

__all__ = ["app", "main"]
