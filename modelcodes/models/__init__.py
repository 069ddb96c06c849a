"""Models package."""
from modelcodes.models.product_type import ProductType
from modelcodes.models.model_classification import ModelClassification
from modelcodes.models.code_classification import CodeClassification
from modelcodes.models.code_usage import CodeUsageEntry, OccupancyType
from modelcodes.models.pre_allocation_log import CodePreAllocationLog
from modelcodes.models.system_config import SystemConfig
from modelcodes.models.audit_log import AuditLog

__all__ = [
    "ProductType",
    "ModelClassification",
    "CodeClassification",
    "CodeUsageEntry",
    "OccupancyType",
    "CodePreAllocationLog",
    "SystemConfig",
    "AuditLog",
]
