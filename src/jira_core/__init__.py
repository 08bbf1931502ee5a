"""Jira core: tracker client, configuration and the workflow engine."""
