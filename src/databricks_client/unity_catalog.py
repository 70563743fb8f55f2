"""
Unity Catalog catalog, schema and table operations.

NOTE: Only import from workspace and config (lower layers).
"""
import logging
import re
from typing import Dict, List, Optional

from databricks.sdk.service.catalog import CatalogInfo, SchemaInfo, TableInfo

from .workspace import ResourceClient, api_call

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_-]+$")

_EXPECTED_FORMAT = {
    1: "catalog",
    2: "catalog.schema",
    3: "catalog.schema.table",
}


def _validate_full_name(full_name: str, parts: int) -> str:
    """
    Validates a dotted Unity Catalog name with exactly `parts` components.
    Returns the name unchanged; raises ValueError if it is malformed.
    """
    names = full_name.split(".")
    if len(names) != parts or any(not p for p in names):
        raise ValueError(
            f"Invalid name '{full_name}'. Expected format: {_EXPECTED_FORMAT[parts]}"
        )
    for p in names:
        if not _IDENTIFIER.match(p):
            raise ValueError(
                f"Invalid identifier '{p}' in '{full_name}'. "
                "Only letters, numbers, underscores, and hyphens are allowed."
            )
    return full_name


def quote_table_name(table_full_name: str) -> str:
    """
    Validates and quotes a fully qualified table name for use in SQL text.
    Returns the quoted table name (e.g., `catalog`.`schema`.`table`).
    """
    _validate_full_name(table_full_name, 3)
    return ".".join(f"`{p}`" for p in table_full_name.split("."))


class UnityCatalog(ResourceClient):
    """Thin wrapper over the Unity Catalog catalogs, schemas and tables APIs."""

    # Catalogs

    @api_call("list_catalogs")
    def list_catalogs(self) -> List[CatalogInfo]:
        return list(self._client.catalogs.list())

    @api_call("get_catalog")
    def get_catalog(self, catalog_name: str) -> CatalogInfo:
        return self._client.catalogs.get(name=_validate_full_name(catalog_name, 1))

    @api_call("create_catalog")
    def create_catalog(
        self,
        name: str,
        comment: Optional[str] = None,
        properties: Optional[Dict[str, str]] = None,
        storage_root: Optional[str] = None,
    ) -> CatalogInfo:
        catalog = self._client.catalogs.create(
            name=_validate_full_name(name, 1),
            comment=comment,
            properties=properties,
            storage_root=storage_root,
        )
        logger.info(f"Created catalog '{name}'")
        return catalog

    @api_call("update_catalog")
    def update_catalog(
        self,
        name: str,
        new_name: Optional[str] = None,
        comment: Optional[str] = None,
        owner: Optional[str] = None,
        properties: Optional[Dict[str, str]] = None,
    ) -> CatalogInfo:
        if new_name is not None:
            _validate_full_name(new_name, 1)
        return self._client.catalogs.update(
            name=_validate_full_name(name, 1),
            new_name=new_name,
            comment=comment,
            owner=owner,
            properties=properties,
        )

    @api_call("delete_catalog")
    def delete_catalog(self, catalog_name: str, force: bool = False) -> None:
        """Delete a catalog; force also deletes it when it is not empty."""
        self._client.catalogs.delete(name=_validate_full_name(catalog_name, 1), force=force)
        logger.info(f"Deleted catalog '{catalog_name}'")

    # Schemas

    @api_call("list_schemas")
    def list_schemas(self, catalog_name: str) -> List[SchemaInfo]:
        return list(
            self._client.schemas.list(catalog_name=_validate_full_name(catalog_name, 1))
        )

    @api_call("get_schema")
    def get_schema(self, full_name: str) -> SchemaInfo:
        return self._client.schemas.get(full_name=_validate_full_name(full_name, 2))

    @api_call("create_schema")
    def create_schema(
        self,
        name: str,
        catalog_name: str,
        comment: Optional[str] = None,
        properties: Optional[Dict[str, str]] = None,
        storage_root: Optional[str] = None,
    ) -> SchemaInfo:
        _validate_full_name(f"{catalog_name}.{name}", 2)
        schema = self._client.schemas.create(
            name=name,
            catalog_name=catalog_name,
            comment=comment,
            properties=properties,
            storage_root=storage_root,
        )
        logger.info(f"Created schema '{catalog_name}.{name}'")
        return schema

    @api_call("update_schema")
    def update_schema(
        self,
        full_name: str,
        new_name: Optional[str] = None,
        comment: Optional[str] = None,
        owner: Optional[str] = None,
        properties: Optional[Dict[str, str]] = None,
    ) -> SchemaInfo:
        if new_name is not None:
            _validate_full_name(new_name, 1)
        return self._client.schemas.update(
            full_name=_validate_full_name(full_name, 2),
            new_name=new_name,
            comment=comment,
            owner=owner,
            properties=properties,
        )

    @api_call("delete_schema")
    def delete_schema(self, full_name: str) -> None:
        self._client.schemas.delete(full_name=_validate_full_name(full_name, 2))
        logger.info(f"Deleted schema '{full_name}'")

    # Tables

    @api_call("list_tables")
    def list_tables(self, catalog_name: str, schema_name: str) -> List[TableInfo]:
        _validate_full_name(f"{catalog_name}.{schema_name}", 2)
        return list(
            self._client.tables.list(catalog_name=catalog_name, schema_name=schema_name)
        )

    @api_call("get_table")
    def get_table(self, full_name: str) -> TableInfo:
        return self._client.tables.get(full_name=_validate_full_name(full_name, 3))

    @api_call("delete_table")
    def delete_table(self, full_name: str) -> None:
        self._client.tables.delete(full_name=_validate_full_name(full_name, 3))
        logger.info(f"Deleted table '{full_name}'")
