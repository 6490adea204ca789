"""
Loads physical column information for a table from CrateDB.
"""

import logging
from typing import List, Optional

from sqlalchemy import text

from cratesink.catalog.columns import PhysicalColumnDescriptor
from cratesink.config.settings import get_settings

logger = logging.getLogger(__name__)

INFORMATION_SCHEMA_QUERY = text("""
    SELECT c.column_details
         , c.column_name
         , c.data_type
         , c.character_maximum_length
         , k.column_name IS NOT NULL AS is_primary_key
    FROM information_schema.columns AS c
    LEFT JOIN information_schema.key_column_usage AS k
      ON c.table_name = k.table_name
         AND c.column_name = k.column_name
         AND c.table_catalog = k.table_catalog
         AND c.table_schema = k.table_schema
    WHERE c.table_name = :table_name
      AND c.table_schema = :table_schema
    ORDER BY c.ordinal_position
""")


class InformationSchemaLoader:
    """Reads the columns of one table from information_schema."""

    def __init__(self, table_name: str, table_schema: Optional[str] = None):
        """
        Initialize loader.

        Args:
            table_name: Unqualified table name
            table_schema: Schema holding the table (defaults to settings)
        """
        self.table_name = table_name
        self.table_schema = table_schema or get_settings().table_schema

    def load(self, connection) -> List[PhysicalColumnDescriptor]:
        """
        Fetch the column descriptors of the table.

        Args:
            connection: SQLAlchemy connection or session, owned by the caller

        Returns:
            Descriptors in ordinal order (empty if the table does not exist)
        """
        result = connection.execute(
            INFORMATION_SCHEMA_QUERY,
            {"table_name": self.table_name, "table_schema": self.table_schema},
        )
        columns = [PhysicalColumnDescriptor.from_row(row) for row in result.mappings().all()]
        logger.debug(f"Loaded {len(columns)} columns for {self.table_schema}.{self.table_name}")
        return columns
