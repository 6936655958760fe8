"""Exam results directory (read-only)."""

from .models import EXAMS_TABLES_CQL, ExamStatus


__all__ = ["EXAMS_TABLES_CQL", "ExamStatus"]
