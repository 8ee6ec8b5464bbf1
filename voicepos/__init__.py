"""Vietnamese voice-command engine for a POS terminal."""
