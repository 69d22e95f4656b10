"""Test suite for the stepwise package.

This package contains unit and integration tests validating the run
environment, the block scheduler, test invocation, fixtures, namespace
runs, and reporting.
"""
