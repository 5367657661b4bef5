"""
Supabase-backed birthday roster.

The engine only ever reads the whole table and writes back the idempotence
fields of one row at a time.
"""

from datetime import datetime
from typing import Any, cast

from supabase import Client

from shared.errors import StoreError


class SupabaseBirthdayStore:
    """Reads and updates the birthdays table."""

    def __init__(self, client: Client, table: str = "birthdays"):
        self.client = client
        self.table = table

    def fetch_all(self) -> list[dict[str, Any]]:
        """
        Fetch every roster row.

        Raises:
            StoreError: If the query fails
        """
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise StoreError(f"Could not load {self.table}: {e}") from e

        return cast(list[dict[str, Any]], response.data or [])

    def update_idempotence_fields(
        self,
        record_id: str,
        last_notified_at: datetime,
        notification_count: int,
        execution_id: str | None = None,
    ) -> None:
        """
        Write the last-sent marker and counter of one record in a single update.

        Raises:
            StoreError: If the update fails or no row has this id
        """
        fields: dict[str, Any] = {
            "last_notified_at": last_notified_at.isoformat(),
            "notification_count": notification_count,
        }
        if execution_id:
            fields["last_execution_id"] = execution_id

        try:
            response = (
                self.client.table(self.table)
                .update(fields)
                .eq("id", record_id)
                .execute()
            )
        except Exception as e:
            raise StoreError(f"Could not update {self.table}/{record_id}: {e}") from e

        if not response.data:
            raise StoreError(f"Record {record_id} not found in {self.table}")
