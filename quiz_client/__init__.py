"""Quiz client helpers: progress tracking for the answer flow."""
