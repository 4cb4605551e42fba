"""Core building blocks: config, errors, logging, document storage."""
