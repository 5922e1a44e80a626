"""Console logging setup and the diagnostic JSON Lines log."""
