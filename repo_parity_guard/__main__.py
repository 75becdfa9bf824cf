from repo_parity_guard.cli import app

app()
