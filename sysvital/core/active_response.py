import psutil
from sysvital.utils.logger import Logger


def kill_process_by_pid(pid: int, timeout: float = 3.0) -> bool:
    """
    Terminates a process by its PID.
    Escalates from SIGTERM (soft kill) to SIGKILL (hard kill) if it does not exit in time.

    Returns:
        bool: True if the process was terminated, False otherwise.
    """
    logger = Logger()
    if pid <= 0:
        logger.warning(f"Refusing to terminate PID {pid}.")
        return False
    try:
        process = psutil.Process(pid)
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except psutil.TimeoutExpired:
            process.kill()

        logger.success(f"PID {pid} terminated.")
        return True

    except psutil.NoSuchProcess:
        logger.warning(f"Process {pid} no longer exists.")
        return False
    except psutil.AccessDenied:
        logger.error(f"Access denied terminating PID {pid}. Admin privileges required.")
        return False
