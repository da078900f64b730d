"""Hypothesis strategies for testing PyReach."""
