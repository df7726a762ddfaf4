"""Test suite for nhlscore."""
