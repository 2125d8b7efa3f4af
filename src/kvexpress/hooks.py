from __future__ import annotations

import logging
import shlex
import subprocess

logger = logging.getLogger(__name__)

# Shell convention for "command not found"
EXIT_NOT_STARTED = 127


def run_post_commit(command: str) -> int:
    """Run the post-commit command and return its exit status.

    The command is split shell-style and executed without a shell. The status
    is reported, never acted on: a failing hook does not undo the commit.
    """
    logger.info(f"exec='{command}'")
    try:
        argv = shlex.split(command)
        completed = subprocess.run(argv, capture_output=True, text=True, check=False)
    except (OSError, ValueError) as e:
        logger.error(f"exec='{command}' started='false' error='{e}'")
        return EXIT_NOT_STARTED

    if completed.stdout:
        logger.debug(f"exec_stdout='{completed.stdout.rstrip()}'")
    if completed.stderr:
        logger.debug(f"exec_stderr='{completed.stderr.rstrip()}'")
    if completed.returncode != 0:
        logger.warning(f"exec='{command}' exit_status='{completed.returncode}'")
    else:
        logger.info(f"exec='{command}' exit_status='0'")
    return completed.returncode
