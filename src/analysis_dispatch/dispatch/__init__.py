"""Batch dispatcher that runs one external CLI worker per analysis target.

Why not a process pool or a task queue?
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Workers are long-running external agent CLIs (hours, not seconds) that
communicate only through files in a per-target working directory. The
dispatcher never runs target work itself: it starts processes, polls their
liveness to keep at most ``max_parallel`` alive, and reads the filesystem
once everything has exited. A ``concurrent.futures`` pool would hold one
thread per blocked child for no gain, and a broker would add an operational
dependency to what is a single-machine, one-shot command.
"""
