"""Task orchestration core.

A task is a persisted plan: a list of nodes, each naming an agent and the
node ids whose outputs it consumes. The executor drains that graph with a
polling scan in declaration order, retries failing nodes a bounded number of
times and hands exhausted nodes to a human-gate agent. Tasks, runs, logs and
artifact records live in SQLite behind ``OrchestratorRepository``.

Nodes of one task run one at a time. The scan is quadratic in plan size,
which is fine for plans of a handful to a few dozen nodes.
"""
