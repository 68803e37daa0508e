"""Tests for the portrait enhancer package."""
