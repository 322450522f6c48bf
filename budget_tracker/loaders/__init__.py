# budget_tracker/loaders/__init__.py
from budget_tracker.loaders.sms_export import SMSExportLoader

__all__ = ["SMSExportLoader"]
