"""
Git command runner used by every git invocation in the miner.

Repositories are cloned from arbitrary URLs into a shared temp root, so
each command runs with an environment that:

- never prompts for credentials (a private or vanished repository fails
  fast instead of blocking its worker on a terminal prompt)
- marks the working directory as safe, so clones owned by a different user
  (sudo, containers) are still readable
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional


def get_git_environment(project_dir: Path) -> Dict[str, str]:
    """
    Get environment variables for a git command run inside project_dir.

    Existing GIT_CONFIG_KEY_n/GIT_CONFIG_VALUE_n pairs from the caller are
    kept and shifted up by one so that safe.directory always sits at index 0.

    Args:
        project_dir: Directory the git command runs in

    Returns:
        Dictionary of environment variables for git commands
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"

    inherited = int(os.environ.get("GIT_CONFIG_COUNT", "0") or 0)
    for idx in range(inherited - 1, -1, -1):
        key = os.environ.get(f"GIT_CONFIG_KEY_{idx}")
        if key is None:
            continue
        env[f"GIT_CONFIG_KEY_{idx + 1}"] = key
        env[f"GIT_CONFIG_VALUE_{idx + 1}"] = os.environ.get(
            f"GIT_CONFIG_VALUE_{idx}", ""
        )

    env["GIT_CONFIG_KEY_0"] = "safe.directory"
    env["GIT_CONFIG_VALUE_0"] = str(Path(project_dir).resolve())
    env["GIT_CONFIG_COUNT"] = str(inherited + 1)

    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    check: bool = True,
    capture_output: bool = True,
    text: bool = True,
    timeout: Optional[float] = None,
    **kwargs,
) -> subprocess.CompletedProcess:
    """
    Run a git command with the miner's git environment.

    Args:
        cmd: Git command as a list (e.g., ["git", "status"])
        cwd: Working directory for the command
        check: Whether to raise CalledProcessError on non-zero exit
        capture_output: Whether to capture stdout and stderr
        text: Whether to decode output as text (False for blob contents)
        timeout: Optional timeout in seconds
        **kwargs: Additional arguments to pass to subprocess.run

    Returns:
        CompletedProcess instance with the command result

    Raises:
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded
    """
    if not cmd or cmd[0] != "git":
        raise ValueError("Command must start with 'git'")

    env = get_git_environment(cwd)

    if "env" in kwargs:
        env.update(kwargs.pop("env"))

    return subprocess.run(
        cmd,
        cwd=cwd,
        check=check,
        capture_output=capture_output,
        text=text,
        timeout=timeout,
        env=env,
        **kwargs,
    )
