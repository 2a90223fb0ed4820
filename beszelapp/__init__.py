"""Beszel Agent Manager - control a Homebrew-installed beszel-agent."""

__version__ = "1.0.0"
