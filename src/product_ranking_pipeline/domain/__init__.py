"""Domain rules for weekly product rankings."""
