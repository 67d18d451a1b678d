"""Tests for sessioncore."""
