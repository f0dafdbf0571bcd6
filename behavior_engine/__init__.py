"""Behavior Engine — heuristic anti-cheating triage."""
