"""
Repo Parity Guard: validate that a Bitbucket Server to GitHub migration
preserved branches, tags, pull requests, commits, teams, webhooks, custom
properties, CODEOWNERS and Git-LFS objects.
"""

__version__ = "0.3.0"
