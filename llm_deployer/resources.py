"""Host resource sampling for model selection and status display."""

import logging

import psutil

from .config import config
from .state import ResourceSample

logger = logging.getLogger(__name__)

GB = 1024 ** 3


def available_memory_gb() -> float:
    """Available host memory in GB; AVAILABLE_MEMORY_GB overrides the sample."""
    if config.available_memory_gb is not None:
        return config.available_memory_gb
    return psutil.virtual_memory().available / GB


def sample_once() -> ResourceSample:
    """Single resource snapshot. The caller owns the polling schedule."""
    mem = psutil.virtual_memory()
    proc = psutil.Process()
    with proc.oneshot():
        rss = proc.memory_info().rss
        threads = proc.num_threads()
    return ResourceSample(
        cpu_percent=psutil.cpu_percent(interval=None),
        memory_percent=mem.percent,
        memory_used_gb=mem.used / GB,
        memory_available_gb=mem.available / GB,
        memory_total_gb=mem.total / GB,
        process_memory_mb=rss / (1024 ** 2),
        thread_count=threads,
    )
