"""Module processors: one writer per downstream domain."""

from lifecycle.processors.processor_base import ModuleProcessor, review_status
from lifecycle.processors.compliance_processor import ComplianceProcessor
from lifecycle.processors.deals_processor import DealsProcessor
from lifecycle.processors.trading_processor import TradingProcessor
from lifecycle.processors.esg_processor import ESGProcessor

__all__ = [
    "ModuleProcessor",
    "review_status",
    "ComplianceProcessor",
    "DealsProcessor",
    "TradingProcessor",
    "ESGProcessor",
]
