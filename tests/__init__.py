"""slice-courier test suite.

- unit/: protocol, host, report, configuration and CLI tests
- fake_host.py: scriptable in-process host (arrival order, failures)
"""
