"""Domain types shared across the replay subsystem."""
