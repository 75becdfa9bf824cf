"""
Thin wrappers around the ``git`` and ``git lfs`` command-line tools.

Only shallow clones are made, always into temporary directories that are
removed when the surrounding ``with`` block exits.
"""

import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from urllib.parse import quote, urlsplit, urlunsplit

from repo_parity_guard.errors import GitCommandError
from repo_parity_guard.normalize import LfsObject, normalize_lfs_listing

logger = logging.getLogger(__name__)

_CREDENTIALS_RE = re.compile(r"(https?://)[^/@\s]+@")


def mask_credentials(text: str) -> str:
    """Replace the user-info part of every URL in ``text`` with ``***``."""
    return _CREDENTIALS_RE.sub(r"\1***@", text)


def inject_credentials(
    url: str,
    token: str | None = None,
    user: str | None = None,
    password: str | None = None,
) -> str:
    """
    Return ``url`` with credentials in its user-info part.

    A token wins (``https://<token>@host/path``); otherwise a user/password
    pair is used. Non-HTTP URLs and URLs without credentials to add are
    returned unchanged.
    """
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        return url
    if token:
        userinfo = quote(token, safe="")
    elif user and password:
        userinfo = f"{quote(user, safe='')}:{quote(password, safe='')}"
    else:
        return url
    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{host}"))


def run_git(
    args: list[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> str:
    """
    Run ``git`` with ``args`` and return its stripped stdout.

    Raises:
        GitCommandError: If git is not installed or exits non-zero. The
            message never contains credentials.
    """
    cmd = ["git", *args]
    printable = mask_credentials(" ".join(cmd))
    logger.debug("Running %s", printable)
    try:
        res = subprocess.run(
            cmd,
            cwd=cwd,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0", **(env or {})},
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitCommandError(f"git executable not found: {e}") from e
    if res.returncode != 0:
        stderr = mask_credentials(res.stderr.strip())
        raise GitCommandError(f"Command failed: {printable}\n{stderr}".rstrip())
    return res.stdout.strip()


def shallow_clone(url: str, target: Path, branch: str | None = None) -> Path:
    """
    Clone the tip of ``branch`` (or the default branch) into ``target``.

    LFS content is not downloaded; pointer files are enough to list objects.
    """
    args = ["clone", "--depth", "1"]
    if branch:
        args += ["--branch", branch]
    args += [url, str(target)]
    logger.info("Cloning %s", mask_credentials(url))
    run_git(args, env={"GIT_LFS_SKIP_SMUDGE": "1"})
    return target


@contextmanager
def temporary_clone(
    url: str, branch: str | None = None, prefix: str = "repo-parity-guard-"
) -> Iterator[Path]:
    """Shallow clone into a temporary directory that is always removed."""
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield shallow_clone(url, temp_dir / "repo", branch)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


def list_lfs_objects(repo_dir: Path) -> list[LfsObject]:
    """
    List the LFS objects tracked at HEAD of a clone.

    Raises:
        GitCommandError: If git-lfs is missing or its output is not JSON.
    """
    output = run_git(["lfs", "ls-files", "--json"], cwd=repo_dir)
    if not output:
        return []
    try:
        payload = json.loads(output)
    except json.JSONDecodeError as e:
        raise GitCommandError(f"Unexpected git lfs output in {repo_dir}: {e}") from e
    return normalize_lfs_listing(payload)
