"""
SQL Agent copy actions.
"""

from .copy import CopyAgentJob, CopyAgentOperator, CopyAgentCategory

__all__ = ["CopyAgentJob", "CopyAgentOperator", "CopyAgentCategory"]
