#!/usr/bin/env python3
# task_wait.py - VMware Automation Scripts Task Polling
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Fixed-interval polling of a long-running task until a terminal state or timeout

import time
import logging

from Tools.errors import TaskTimeoutError
from Tools.result_shaper import TASK_TERMINAL

logger = logging.getLogger(__name__)

#==============================================================================
# MODULE CONFIGURATION
#==============================================================================

TASK_POLL_INTERVAL = 3   # seconds between task status checks
TASK_TIMEOUT = 600       # 10 minutes max wait

#==============================================================================
# POLLING
#==============================================================================

def is_terminal(status: str) -> bool:
    """success, error, canceled and aborted end a task; anything else is in progress"""
    return status in TASK_TERMINAL


def wait_for_task(fetch_task, timeout: float = TASK_TIMEOUT,
                  poll_interval: float = TASK_POLL_INTERVAL,
                  task_ref: str = 'task', write_output=None):
    """
    Poll a task until it reaches a terminal state.

    :param fetch_task: Callable returning the current task (object with .status)
    :param timeout: Maximum seconds to wait
    :param poll_interval: Seconds between status checks
    :param task_ref: Task identifier used in messages
    :param write_output: Optional progress function (vmfunctions.write_output)
    :return: The task in its terminal state
    :raises TaskTimeoutError: deadline passed before a terminal state
    """
    _log = write_output if write_output else logger.info
    start_time = time.time()
    check_count = 0
    status = ''

    while (time.time() - start_time) < timeout:
        check_count += 1
        task = fetch_task()
        status = task.status
        elapsed = int(time.time() - start_time)

        _log(f'[Check {check_count}] Task {task_ref} status: {status} (elapsed: {elapsed}s)')

        if is_terminal(status):
            return task

        time.sleep(poll_interval)

    elapsed = int(time.time() - start_time)
    _log(f'Task {task_ref} timed out after {elapsed}s (max: {timeout}s)')
    raise TaskTimeoutError(task_ref, timeout, status)
