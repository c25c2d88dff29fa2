"""Copycopter client version."""

VERSION = "2.0.0"
