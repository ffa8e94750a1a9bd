"""Shared fixtures for datastore_mcp tests."""

import pytest

from datastore_mcp.config import Config, CosmosConfig, MssqlConfig


@pytest.fixture
def mssql_config() -> MssqlConfig:
    return MssqlConfig(connection_string="server=localhost;database=test;user id=sa;password=pw")


@pytest.fixture
def cosmos_config() -> CosmosConfig:
    return CosmosConfig(
        endpoint="https://example.documents.azure.com:443/",
        key="dGVzdGtleQ==",
        default_database="mydb",
    )


@pytest.fixture
def cosmos_config_no_key() -> CosmosConfig:
    return CosmosConfig(endpoint="https://example.documents.azure.com:443/")


@pytest.fixture
def mssql_only(mssql_config) -> Config:
    return Config(mssql=mssql_config)


@pytest.fixture
def cosmos_only(cosmos_config) -> Config:
    return Config(cosmos=cosmos_config)
