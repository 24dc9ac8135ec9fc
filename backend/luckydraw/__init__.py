"""Lucky draw: a finite deck of prize envelopes drawn one at a time."""
