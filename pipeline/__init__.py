"""
pipeline/ - Runtime wiring and the polling loop.

- context: HunterContext built from HunterConfig
- driver: ScanCursor and PipelineDriver
"""

from pipeline.context import HunterContext, executor_config_from
from pipeline.driver import PipelineDriver, ScanCursor

__all__ = [
    "HunterContext",
    "PipelineDriver",
    "ScanCursor",
    "executor_config_from",
]
