from gains_tracker.exceptions import InvalidInputError, PriceNotAvailableError
from gains_tracker.matcher import LotMatcher, match, match_events, summarize
from gains_tracker.models import (
    CapitalGainRecord, CostBasisMethod, GainType, MatchResult, TaxReport,
    UnmatchedDisposal, ValuedEvent, WalletTaxReport, WalletTransfer
)
from gains_tracker.report import TaxReportGenerator, generate_tax_report

__all__ = [
    'InvalidInputError', 'PriceNotAvailableError',
    'LotMatcher', 'match', 'match_events', 'summarize',
    'CapitalGainRecord', 'CostBasisMethod', 'GainType', 'MatchResult', 'TaxReport',
    'UnmatchedDisposal', 'ValuedEvent', 'WalletTaxReport', 'WalletTransfer',
    'TaxReportGenerator', 'generate_tax_report',
]
