"""
Exceptions raised by the comparison engine and its collaborators
"""


class InvalidClauseInputError(ValueError):
    """Caller passed a clause, clause list or category map of the wrong shape"""


class UnknownTaxonomyError(KeyError):
    """Requested category taxonomy is not registered"""

    def __str__(self):
        return f"Unknown taxonomy: {self.args[0]!r}" if self.args else "Unknown taxonomy"


class ClauseExtractionError(RuntimeError):
    """LLM clause extraction failed after all retries"""


class DocumentProcessingError(ValueError):
    """Uploaded document could not be turned into text"""
