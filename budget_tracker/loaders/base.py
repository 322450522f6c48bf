# budget_tracker/loaders/base.py
from abc import ABC, abstractmethod


class BaseLoader(ABC):
    @abstractmethod
    def load(self, file_path: str):
        """
        Yield SMSTransaction candidates parsed from file_path.
        Messages that are not bank SMS, or carry no amount, are skipped.
        """
        pass
