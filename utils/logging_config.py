# utils/logging_config.py

import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional
import json
from datetime import datetime
import numpy as np

from config import SystemConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: SystemConfig, log_name: str = "matcher") -> logging.Logger:
    """Setup application logging"""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(config.log_level).upper(), logging.INFO))

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # File handler (rotating)
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / f"{log_name}.log",
        maxBytes=10*1024*1024,  # 10 MB
        backupCount=5
    )
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))

    handlers = [console_handler, file_handler]

    # JSON handler for structured logs
    if config.structured_logs:
        json_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{log_name}_structured.json",
            maxBytes=10*1024*1024,
            backupCount=5
        )
        json_handler.setFormatter(JSONFormatter())
        handlers.append(json_handler)

    # Replace handlers from an earlier call, leave foreign ones alone
    for handler in list(root.handlers):
        if getattr(handler, '_matcher_handler', False):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        handler._matcher_handler = True
        root.addHandler(handler)

    return logging.getLogger(log_name)


def log_operation(logger: logging.Logger, operation: str, **kwargs):
    """Log structured operation data"""
    data = {
        'operation': operation,
        'timestamp': datetime.now().isoformat(),
        **kwargs
    }
    logger.info(json.dumps(data, default=str), extra={'operation_data': data})


class JSONFormatter(logging.Formatter):
    """
    Format records as one JSON object per line

    Records emitted through log_operation carry their fields as a nested
    'operation' object instead of a re-encoded message string.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'location': f"{record.module}.{record.funcName}:{record.lineno}"
        }

        operation = getattr(record, 'operation_data', None)
        if operation is not None:
            log_data['operation'] = operation
        else:
            log_data['message'] = record.getMessage()

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


# Performance monitoring
class PerformanceLogger:
    """
    Collect ranking timings keyed by operation (usually a metric name)
    """

    def __init__(self):
        self.metrics = []

    def log_metric(self, operation: str, duration: float, **metadata):
        """Record one timed operation; dataset_size enables throughput stats"""
        self.metrics.append({
            'timestamp': datetime.now().isoformat(),
            'operation': operation,
            'duration_seconds': duration,
            **metadata
        })

    @contextmanager
    def timed(self, operation: str, **metadata):
        """Time the enclosed block and record it under operation"""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.log_metric(operation, time.perf_counter() - start, **metadata)

    def operations(self) -> List[str]:
        return sorted({m['operation'] for m in self.metrics})

    def save_metrics(self, output_path: str):
        """Save raw timings and per-operation statistics to a JSON file"""
        report = {
            'timings': self.metrics,
            'statistics': {op: self.get_statistics(op) for op in self.operations()}
        }
        with open(output_path, 'w') as f:
            json.dump(report, f, indent=2, default=str)

    def get_statistics(self, operation: Optional[str] = None) -> dict:
        """Get timing statistics, for one operation or all of them"""
        selected = [m for m in self.metrics
                    if operation is None or m['operation'] == operation]
        if not selected:
            return {}

        durations = np.array([m['duration_seconds'] for m in selected])
        stats = {
            'count': len(durations),
            'mean': float(np.mean(durations)),
            'median': float(np.median(durations)),
            'min': float(np.min(durations)),
            'max': float(np.max(durations)),
            'std': float(np.std(durations)),
            'total': float(np.sum(durations))
        }

        # Entries scored per second, over timings that know their dataset size
        sized = [m for m in selected if 'dataset_size' in m]
        if sized:
            scored = sum(m['dataset_size'] for m in sized)
            elapsed = sum(m['duration_seconds'] for m in sized)
            stats['entries_per_second'] = scored / max(elapsed, 1e-9)
        return stats
