"""Spec, example and definition builders shared by the test suite.

Two small spec documents model the shapes the engine has to handle:

- a Service Fabric Mesh style spec with one resource id nested in arrays
- a Data Share style spec with discriminated data set kinds
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

MESH_NETWORK_TYPE = "Microsoft.ServiceFabricMesh/networks"
MESH_APP_PATH = (
    "/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}"
    "/providers/Microsoft.ServiceFabricMesh/applications/{applicationResourceName}"
)
DATASET_PATH = (
    "/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}"
    "/providers/Microsoft.DataShare/accounts/{accountName}/shares/{shareName}"
    "/dataSets/{dataSetName}"
)


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def write_yaml(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def arm_id(resource_type: str) -> dict[str, Any]:
    """A string property annotated as the id of *resource_type*."""
    return {
        "type": "string",
        "x-ms-arm-id-details": {"allowedResources": [{"type": resource_type}]},
    }


# ----------------------------------------------------------------------
# Service Fabric Mesh style spec: one resource id nested in arrays
# ----------------------------------------------------------------------


def mesh_spec() -> dict[str, Any]:
    return {
        "swagger": "2.0",
        "info": {"title": "ServiceFabricMeshManagementClient", "version": "2018-09-01-preview"},
        "paths": {
            MESH_APP_PATH: {
                "put": {
                    "operationId": "Application_Create",
                    "parameters": [
                        {"$ref": "#/parameters/SubscriptionIdParameter"},
                        {
                            "name": "applicationResourceDescription",
                            "in": "body",
                            "required": True,
                            "schema": {"$ref": "#/definitions/ApplicationResourceDescription"},
                        },
                    ],
                    "responses": {
                        "200": {
                            "description": "OK",
                            "schema": {"$ref": "#/definitions/ApplicationResourceDescription"},
                        },
                        "201": {
                            "description": "Created",
                            "schema": {"$ref": "#/definitions/ApplicationResourceDescription"},
                        },
                    },
                    "x-ms-examples": {
                        "CreateOrUpdateApplication": {
                            "$ref": "./examples/applications/create_update.json"
                        }
                    },
                },
                "get": {
                    "operationId": "Application_Get",
                    "parameters": [{"$ref": "#/parameters/SubscriptionIdParameter"}],
                    "responses": {
                        "200": {
                            "description": "OK",
                            "schema": {"$ref": "#/definitions/ApplicationResourceDescription"},
                        }
                    },
                    "x-ms-examples": {
                        "GetApplication": {"$ref": "./examples/applications/get.json"}
                    },
                },
            }
        },
        "parameters": {
            "SubscriptionIdParameter": {
                "name": "subscriptionId",
                "in": "path",
                "required": True,
                "type": "string",
            }
        },
        "definitions": {
            "ApplicationResourceDescription": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "readOnly": True},
                    "name": {"type": "string", "readOnly": True},
                    "location": {"type": "string"},
                    "properties": {"$ref": "#/definitions/ApplicationProperties"},
                },
            },
            "ApplicationProperties": {
                "type": "object",
                "properties": {
                    "description": {"type": "string"},
                    "provisioningState": {"type": "string", "readOnly": True},
                    "services": {
                        "type": "array",
                        "items": {"$ref": "#/definitions/ServiceResourceDescription"},
                    },
                },
            },
            "ServiceResourceDescription": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "properties": {"$ref": "#/definitions/ServiceProperties"},
                },
            },
            "ServiceProperties": {
                "type": "object",
                "properties": {
                    "osType": {"type": "string"},
                    "networkRefs": {
                        "type": "array",
                        "items": {"$ref": "#/definitions/NetworkRef"},
                    },
                },
            },
            "NetworkRef": {
                "type": "object",
                "properties": {"name": arm_id(MESH_NETWORK_TYPE)},
            },
        },
    }


def mesh_create_example() -> dict[str, Any]:
    return {
        "parameters": {
            "subscriptionId": "00000000-0000-0000-0000-000000000000",
            "applicationResourceDescription": {
                "location": "EastUS",
                "properties": {
                    "description": "Service Fabric Mesh sample application.",
                    "services": [
                        {
                            "name": "helloWorldService",
                            "properties": {
                                "osType": "Linux",
                                "networkRefs": [{"name": "/subscriptions/sub/networks/sampleNetwork"}],
                            },
                        }
                    ],
                },
            },
        },
        "responses": {
            "200": {
                "body": {
                    "id": "/subscriptions/sub/applications/sampleApplication",
                    "name": "sampleApplication",
                    "location": "EastUS",
                    "properties": {
                        "description": "Service Fabric Mesh sample application.",
                        "provisioningState": "Succeeded",
                    },
                }
            },
            "201": {},
        },
    }


def mesh_get_example() -> dict[str, Any]:
    return {
        "parameters": {"subscriptionId": "00000000-0000-0000-0000-000000000000"},
        "responses": {"200": {"body": {"name": "sampleApplication"}}},
    }


# ----------------------------------------------------------------------
# Data Share style spec: discriminated data set kinds
# ----------------------------------------------------------------------


def datashare_spec() -> dict[str, Any]:
    def data_set(value: str, properties_def: str) -> dict[str, Any]:
        return {
            "allOf": [{"$ref": "#/definitions/DataSet"}],
            "x-ms-discriminator-value": value,
            "properties": {"properties": {"$ref": f"#/definitions/{properties_def}"}},
        }

    return {
        "swagger": "2.0",
        "info": {"title": "DataShareManagementClient", "version": "2020-09-01"},
        "paths": {
            DATASET_PATH: {
                "put": {
                    "operationId": "DataSets_Create",
                    "parameters": [
                        {
                            "name": "dataSet",
                            "in": "body",
                            "required": True,
                            "schema": {"$ref": "#/definitions/DataSet"},
                        }
                    ],
                    "responses": {
                        "201": {"description": "Created", "schema": {"$ref": "#/definitions/DataSet"}}
                    },
                    "x-ms-examples": {
                        "DataSets_KustoCluster_Create": {
                            "$ref": "./examples/DataSets_KustoCluster_Create.json"
                        },
                        "DataSets_KustoDatabase_Create": {
                            "$ref": "./examples/DataSets_KustoDatabase_Create.json"
                        },
                        "DataSets_SqlDWTable_Create": {
                            "$ref": "./examples/DataSets_SqlDWTable_Create.json"
                        },
                        "DataSets_Blob_Create": {"$ref": "./examples/DataSets_Blob_Create.json"},
                    },
                }
            }
        },
        "definitions": {
            "DataSet": {
                "type": "object",
                "discriminator": "kind",
                "required": ["kind"],
                "properties": {
                    "id": {"type": "string", "readOnly": True},
                    "kind": {"type": "string"},
                },
            },
            "KustoClusterDataSet": data_set("KustoCluster", "KustoClusterDataSetProperties"),
            "KustoDatabaseDataSet": data_set("KustoDatabase", "KustoDatabaseDataSetProperties"),
            "SqlDWTableDataSet": data_set("SqlDWTable", "SqlDWTableProperties"),
            "KustoClusterDataSetProperties": {
                "type": "object",
                "properties": {
                    "kustoClusterResourceId": arm_id("Microsoft.Kusto/clusters"),
                    "location": {"type": "string", "readOnly": True},
                },
            },
            "KustoDatabaseDataSetProperties": {
                "type": "object",
                "properties": {
                    "kustoDatabaseResourceId": arm_id("Microsoft.Kusto/clusters/databases"),
                },
            },
            "SqlDWTableProperties": {
                "type": "object",
                "properties": {
                    "sqlServerResourceId": arm_id("Microsoft.Sql/servers"),
                    "tableName": {"type": "string"},
                },
            },
        },
    }


def data_set_example(kind: str, properties: dict[str, Any], with_response: bool = False) -> dict[str, Any]:
    example: dict[str, Any] = {
        "parameters": {
            "accountName": "Account1",
            "dataSet": {"kind": kind, "properties": properties},
        },
        "responses": {"201": {}},
    }
    if with_response:
        example["responses"]["201"] = {
            "body": {"id": "/subscriptions/sub/dataSets/ds1", "kind": kind, "properties": properties}
        }
    return example


