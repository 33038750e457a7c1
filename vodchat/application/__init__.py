"""Application layer: the command surface wiring the replay engine together."""
