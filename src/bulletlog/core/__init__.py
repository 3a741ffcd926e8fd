"""Shared infrastructure: config, exceptions, events, logging, CLI."""
