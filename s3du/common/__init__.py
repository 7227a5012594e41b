"""Shared helpers: boto3 client creation and output formatting."""
