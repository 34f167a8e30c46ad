"""HTTP surface: the receipt and stats entry points plus the leaderboard read."""
