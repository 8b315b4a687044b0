"""
RxMatch - Manual Review Queue

Routes prescription calculations that fall below the automated confidence
threshold to human reviewers and records every decision for audit.
"""

__version__ = "0.1.0"
