import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.resources import FunctionsResource
from provisioning import (
    BicepExpression,
    ConstructFinalizedError,
    FunctionApp,
    KeyVault,
    KeyVaultSecret,
    Parameter,
    ResourceModuleConstruct,
    render_bicep,
)
from provisioning.bicep import quote_string, render_value
from provisioning.construct import to_bicep_identifier


def _construct(name: str = "myfunc") -> ResourceModuleConstruct:
    return ResourceModuleConstruct(FunctionsResource(name))


def test_construct_declares_location_parameter():
    construct = _construct()

    location = construct.get_parameter("location")

    assert location is not None
    assert location.default == BicepExpression("resourceGroup().location")


def test_construct_is_write_once():
    construct = _construct()
    app = FunctionApp(construct, "myfunc")

    construct.build()

    with pytest.raises(ConstructFinalizedError):
        construct.add_parameter(Parameter("other"))
    with pytest.raises(ConstructFinalizedError):
        FunctionApp(construct, "second")
    with pytest.raises(ConstructFinalizedError):
        app.assign_property("properties.httpsOnly", False)


def test_build_returns_cached_template():
    construct = _construct()
    app = FunctionApp(construct, "myfunc")

    first = construct.build()
    app.tags["late"] = "ignored"

    assert construct.build() is first
    assert "late" not in first


def test_duplicate_symbols_are_rejected():
    construct = _construct()
    construct.add_parameter(Parameter("keyVaultName"))

    with pytest.raises(ValueError):
        construct.add_parameter(Parameter("keyVaultName"))
    with pytest.raises(ValueError):
        FunctionApp(construct, "keyVaultName")


def test_existing_key_vault_requires_declared_parameter():
    construct = _construct()

    with pytest.raises(ValueError):
        KeyVault.from_existing(construct, "keyVaultName")


def test_assign_property_creates_nested_objects():
    construct = _construct()
    app = FunctionApp(construct, "myfunc")

    app.assign_property("properties.siteConfig.alwaysOn", True)
    app.assign_property("identity.type", "SystemAssigned")

    assert app.properties["siteConfig"]["alwaysOn"] is True
    assert app.body["identity"] == {"type": "SystemAssigned"}

    with pytest.raises(ValueError):
        app.assign_property("kind.value", "x")
    with pytest.raises(ValueError):
        app.assign_property("", "x")


@pytest.mark.parametrize(
    "name,expected",
    [("myfunc", "myfunc"), ("orders-api", "orders_api"), ("1st", "_1st"), ("a.b c", "a_b_c")],
)
def test_to_bicep_identifier(name, expected):
    assert to_bicep_identifier(name) == expected


def test_quote_string_escapes_bicep_syntax():
    assert quote_string("it's ${x}\\") == "'it\\'s \\${x}\\\\'"


def test_function_app_name_is_escaped():
    construct = _construct("it's")

    app = FunctionApp(construct, "it's")

    assert app.identifier == "it_s"
    assert app.name == BicepExpression("toLower(take('it\\'s${uniqueString(resourceGroup().id)}', 60))")
    assert "name: toLower(take('it\\'s${uniqueString(resourceGroup().id)}', 60))" in construct.build()


def test_unique_symbol_skips_declared_and_reserved_names():
    construct = _construct()
    FunctionApp(construct, "myfunc")

    assert construct.unique_symbol("api") == "api"
    assert construct.unique_symbol("location") == "location_1"
    assert construct.unique_symbol("myfunc", reserved=["myfunc_1"]) == "myfunc_2"


def test_function_app_references():
    app = FunctionApp(_construct(), "orders-api")

    assert app.host_name == BicepExpression("orders_api.properties.hostName")
    assert app.list_keys() == BicepExpression("orders_api.listKeys(orders_api.apiVersion)")


def test_render_value_handles_nested_structures():
    rendered = render_value({"a": [1, True, None], "b-c": {}, "d": BicepExpression("x.id")})

    assert rendered == "{\n  a: [\n    1\n    true\n    null\n  ]\n  'b-c': {}\n  d: x.id\n}"


def test_render_value_rejects_unknown_types():
    with pytest.raises(TypeError):
        render_value(object())


def test_render_bicep_full_module():
    construct = _construct()
    construct.add_parameter(Parameter("keyVaultName"))
    app = FunctionApp(construct, "myfunc")
    app.tags["aspire-resource-name"] = "myfunc"
    vault = KeyVault.from_existing(construct, "keyVaultName")
    secret = KeyVaultSecret(construct, vault, "connectionString")
    secret.assign_property("properties.value", BicepExpression("'${myfunc.properties.hostName}'"))

    expected = "\n".join(
        [
            "targetScope = 'resourceGroup'",
            "",
            "@description('The location for the resource(s) to be deployed.')",
            "param location string = resourceGroup().location",
            "",
            "param keyVaultName string",
            "",
            "resource myfunc 'Microsoft.Web/sites@2022-09-01' = {",
            "  name: toLower(take('myfunc${uniqueString(resourceGroup().id)}', 60))",
            "  location: location",
            "  tags: {",
            "    'aspire-resource-name': 'myfunc'",
            "  }",
            "  properties: {",
            "    httpsOnly: true",
            "    siteConfig: {",
            "      minTlsVersion: '1.2'",
            "      ftpsState: 'FtpsOnly'",
            "    }",
            "  }",
            "  kind: 'functionapp'",
            "}",
            "",
            "resource keyVault 'Microsoft.KeyVault/vaults@2022-07-01' existing = {",
            "  name: keyVaultName",
            "}",
            "",
            "resource keyVaultSecret_connectionString 'Microsoft.KeyVault/vaults/secrets@2022-07-01' = {",
            "  parent: keyVault",
            "  name: 'connectionString'",
            "  properties: {",
            "    value: '${myfunc.properties.hostName}'",
            "  }",
            "}",
            "",
        ]
    )

    assert render_bicep(construct) == expected


def test_secure_parameter_rendering():
    construct = _construct()
    construct.add_parameter(Parameter("adminPassword", description="Admin password", secure=True))

    rendered = render_bicep(construct)

    assert "@description('Admin password')\n@secure()\nparam adminPassword string" in rendered
