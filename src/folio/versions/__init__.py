"""Version history — bounded snapshots of records taken before each update."""
