from titledraft.documents.properties import (
    CustomMeasurement,
    PropertyDocumentManager,
    compute_total_extent_sq_ft,
)

__all__ = ["CustomMeasurement", "PropertyDocumentManager", "compute_total_extent_sq_ft"]
