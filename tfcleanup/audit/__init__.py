"""Workspace audit: fetch, filter, sync, scan, reconcile, report."""
