# budget_tracker/loaders/sms_export.py
import logging

import pandas as pd

from budget_tracker.loaders.base import BaseLoader
from budget_tracker.sms import is_bank_sms, parse_transaction

logger = logging.getLogger(__name__)


class SMSExportLoader(BaseLoader):
    """
    Loader for SMS inbox exports saved as CSV.
    A header row containing 'sender' and 'body' (or 'message') is located
    first; a 'date' column is optional and becomes the candidate timestamp.
    """
    def load(self, file_path):
        # 1. Detect header row
        raw = pd.read_csv(file_path, header=None, dtype=str, keep_default_na=False)
        header_row = None
        for idx, row in raw.iterrows():
            vals = [str(v).strip().lower() for v in row.values]
            if 'sender' in vals and ('body' in vals or 'message' in vals):
                header_row = idx
                break
        if header_row is None:
            raise RuntimeError(f"Could not locate header row in {file_path}")

        # 2. Read with that header
        df = pd.read_csv(file_path, header=header_row, dtype=str)

        # 3. Column lookup
        cols = {c.strip().lower(): c for c in df.columns}
        sender_col = cols.get('sender')
        body_col   = cols.get('body') or cols.get('message')
        date_col   = cols.get('date')

        # 4. Parse & yield bank messages only
        for _, row in df.iterrows():
            body = row[body_col]
            if pd.isna(body) or not str(body).strip():
                continue
            body = str(body).strip()

            sender = row[sender_col]
            sender = None if pd.isna(sender) else str(sender).strip()

            if not is_bank_sms(sender, body):
                continue

            timestamp = None
            if date_col is not None and pd.notna(row[date_col]):
                try:
                    timestamp = int(pd.Timestamp(row[date_col]).timestamp() * 1000)
                except ValueError:
                    raise ValueError(f"Could not parse date '{row[date_col]}' in {file_path}")

            candidate = parse_transaction(body, sender, timestamp=timestamp)
            if candidate is None:
                logger.debug("No amount found in SMS from %s", sender)
                continue
            yield candidate
