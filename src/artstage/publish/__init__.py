from __future__ import annotations

from .report import report_to_dict, write_stage_report
from .step_summary import write_step_summary

__all__ = [
    "report_to_dict",
    "write_stage_report",
    "write_step_summary",
]
