"""Service layer used by editor integrations."""

from hitlens.service.analysis import AnalysisService, FormatResult, SchemaStatus
from hitlens.service.document import InputDocument

__all__ = ["AnalysisService", "FormatResult", "InputDocument", "SchemaStatus"]
