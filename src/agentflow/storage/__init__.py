"""Relational persistence for tasks, runs, logs and artifacts."""
