"""Analysis pipeline: assembled outcome and the synchronous runner."""

from .assembler import OutcomeAssembler
from .models import AnalysisOutcome, ParsedDataResponse
from .service import AnalysisService

__all__ = ["AnalysisOutcome", "AnalysisService", "OutcomeAssembler", "ParsedDataResponse"]
