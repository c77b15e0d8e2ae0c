"""Logging, console and configuration helpers shared by the CLIs and daemon."""
