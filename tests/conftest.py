"""Shared test fixtures for the scenario engine test suite.

Spec documents, examples and test definitions are written into ``tmp_path``
so every test works on real files, the way the engine does.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from tests.fixtures import (
    data_set_example,
    datashare_spec,
    mesh_create_example,
    mesh_get_example,
    mesh_spec,
    write_json,
)


@pytest.fixture
def mesh_spec_path(tmp_path: Path) -> Path:
    """Write the mesh spec with its examples; return the spec path."""
    root = tmp_path / "specification" / "servicefabricmesh"
    write_json(root / "examples" / "applications" / "create_update.json", mesh_create_example())
    write_json(root / "examples" / "applications" / "get.json", mesh_get_example())
    return write_json(root / "servicefabricmesh.json", mesh_spec())


@pytest.fixture
def datashare_spec_path(tmp_path: Path) -> Path:
    """Write the data share spec with its examples; return the spec path."""
    root = tmp_path / "specification" / "datashare"
    examples = root / "examples"
    write_json(
        examples / "DataSets_KustoCluster_Create.json",
        data_set_example(
            "KustoCluster",
            {
                "kustoClusterResourceId": "/subscriptions/sub/providers/Microsoft.Kusto/clusters/c1",
                # Not declared on the KustoCluster subtype; must not be reported.
                "sqlServerResourceId": "/subscriptions/sub/providers/Microsoft.Sql/servers/s1",
            },
            with_response=True,
        ),
    )
    write_json(
        examples / "DataSets_KustoDatabase_Create.json",
        data_set_example(
            "KustoDatabase",
            {"kustoDatabaseResourceId": "/subscriptions/sub/clusters/c1/databases/d1"},
        ),
    )
    write_json(
        examples / "DataSets_SqlDWTable_Create.json",
        data_set_example(
            "SqlDWTable",
            {"sqlServerResourceId": "/subscriptions/sub/servers/s1", "tableName": "t1"},
        ),
    )
    write_json(
        examples / "DataSets_Blob_Create.json",
        data_set_example("Blob", {"containerName": "c"}),
    )
    return write_json(root / "DataShare.json", datashare_spec())
