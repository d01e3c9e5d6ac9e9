"""Two-sided pari-mutuel deposit and settlement engine."""
