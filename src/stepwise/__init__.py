"""Execution engine of a unit-testing framework.

The `stepwise` package runs registered tests grouped into namespaces in
a deterministic order and reports their outcomes as a stream of events.

Key features:
- a cooperative scheduler that suspends on asynchronous tests and
  resumes when they call back, without blocking a thread;
- once and each fixtures, as wrappers or as before/after hooks;
- per-action error isolation, so one broken test never aborts a run;
- type-keyed report dispatch with entry point reporter plugins;
- a run summary merged additively across namespaces.
"""
