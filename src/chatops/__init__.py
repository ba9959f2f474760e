"""ChatOps event dispatcher for GitHub repository automation.

This package implements the event routing layer of a ChatOps bot that runs
once per GitHub Actions event, providing:
- Payload shape validation for issue, pull request, comment and review events
- A plugin registry with per-category handler lookups
- Concurrent fan-out of handlers with isolated failures
- Demultiplexing of raw webhook event names into handler categories
- Built-in comment and pull request plugins backed by the GitHub REST API
"""
