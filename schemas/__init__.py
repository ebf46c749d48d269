"""
Bundle Schemas Package
Provides standardized data structures for catalog items, bundles, plans and
batch outcomes.
"""

from .bundle_schemas import (
    # Domain schemas
    CatalogItem,
    Bundle,
    CampaignPlan,

    # Helper functions
    catalog_index,
    child_images_for,
)
from .results import (
    # Outcome variants
    ItemSuccess,
    ItemFailure,
    Outcome,
    BatchResult,

    # Created records
    BundleProductRecord,
    BundleDiscountRecord,
    CheckoutSession,
    CheckoutAttempt,
)
