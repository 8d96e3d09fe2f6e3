"""Unit tests for galatea."""
