import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.annotations import (
    AnnotationBehavior,
    ConnectionStringRedirectAnnotation,
    ContainerImageAnnotation,
    ResourceAnnotationCollection,
)
from core.application import DistributedApplicationBuilder, DuplicateResourceError, ExecutionContext
from core.expressions import (
    BicepOutputReference,
    BicepSecretOutputReference,
    MissingOutputError,
    ReferenceExpression,
)
from core.resources import (
    ConnectionStringRedirectError,
    FunctionsResource,
    Resource,
    resolve_connection_string_expression,
)
from core.settings import DEFAULT_MANIFEST_PATH, HostingSettings
from providers.azure_bicep import AzureBicepResource


class _StaticConnection(Resource):
    def __init__(self, name, value):
        super().__init__(name)
        self._expression = ReferenceExpression.create(value)

    @property
    def connection_string_expression(self):
        return self._expression


def test_settings_from_env_defaults():
    settings = HostingSettings.from_env({})

    assert settings.publisher is None
    assert settings.is_publish_mode is False
    assert settings.manifest_path == pathlib.Path(DEFAULT_MANIFEST_PATH)


def test_settings_from_env_publish_mode():
    settings = HostingSettings.from_env(
        {"ASPIRE_PUBLISHER": "Manifest", "ASPIRE_MANIFEST_PATH": "out/manifest.json"}
    )

    assert settings.is_publish_mode is True
    assert settings.manifest_path == pathlib.Path("out/manifest.json")


def test_builder_reads_execution_mode_from_environment(monkeypatch):
    monkeypatch.setenv("ASPIRE_PUBLISHER", "manifest")

    builder = DistributedApplicationBuilder()

    assert builder.execution_context.is_publish_mode
    assert not builder.execution_context.is_run_mode


def test_builder_defaults_to_run_mode():
    builder = DistributedApplicationBuilder(HostingSettings())

    assert builder.execution_context == ExecutionContext()
    assert builder.execution_context.is_run_mode


def test_duplicate_resource_names_are_rejected():
    builder = DistributedApplicationBuilder(HostingSettings())
    builder.add_functions("api")

    with pytest.raises(DuplicateResourceError):
        builder.add_functions("API")


def test_create_resource_builder_does_not_register():
    builder = DistributedApplicationBuilder(HostingSettings())
    resource = FunctionsResource("detached")

    resource_builder = builder.create_resource_builder(resource)

    assert resource_builder.resource is resource
    assert builder.build().find("detached") is None


def test_model_find_is_case_insensitive():
    builder = DistributedApplicationBuilder(HostingSettings())
    resource = builder.add_functions("Orders").resource

    assert builder.build().find("orders") is resource


def test_resource_requires_name():
    with pytest.raises(ValueError):
        FunctionsResource("")


def test_with_annotation_replace_behavior():
    builder = DistributedApplicationBuilder(HostingSettings())
    functions = builder.add_functions("api", image="first")

    functions.with_annotation(ContainerImageAnnotation(image="second"), AnnotationBehavior.REPLACE)

    images = functions.resource.annotations.of_type(ContainerImageAnnotation)
    assert [image.image for image in images] == ["second"]


def test_annotation_collection_helpers():
    collection = ResourceAnnotationCollection()
    first = ContainerImageAnnotation(image="a")
    second = ContainerImageAnnotation(image="a")
    collection.extend([first, second])

    with pytest.raises(ValueError):
        collection.single_or_none(ContainerImageAnnotation)

    collection.remove(second)
    assert collection == [first]
    assert collection.single_or_none(ContainerImageAnnotation) is first
    assert collection.single_or_none(ConnectionStringRedirectAnnotation) is None

    with pytest.raises(ValueError):
        collection.remove(second)

    assert collection.remove_type(ContainerImageAnnotation) == 1
    assert collection == []


def test_container_image_reference():
    assert ContainerImageAnnotation(image="app").reference == "app:latest"
    assert ContainerImageAnnotation(image="app", tag="1", registry="r.io").reference == "r.io/app:1"


def test_reference_expression_mixes_literals_and_references():
    resource = AzureBicepResource("storage")
    endpoint = BicepOutputReference("blobEndpoint", resource)
    key = resource.get_secret_output("key")
    assert isinstance(key, BicepSecretOutputReference)

    expression = ReferenceExpression.create("Endpoint=", endpoint, ";Key=", key)

    assert not expression.is_literal
    assert expression.value_expression == (
        "Endpoint={storage.outputs.blobEndpoint};Key={storage.secretOutputs.key}"
    )
    with pytest.raises(MissingOutputError):
        expression.get_value()

    resource.outputs["blobEndpoint"] = "https://storage"
    resource.secret_outputs["key"] = "s3cret"
    assert expression.get_value() == "Endpoint=https://storage;Key=s3cret"


def test_reference_expression_nests_and_compares():
    resource = AzureBicepResource("storage")
    inner = ReferenceExpression.create(resource.get_output("url"))

    outer = ReferenceExpression.create("url=", inner)

    assert outer.value_expression == "url={storage.outputs.url}"
    assert ReferenceExpression.create("a") == ReferenceExpression.create("a")
    assert ReferenceExpression.create("a").is_literal
    with pytest.raises(TypeError):
        ReferenceExpression.create(42)


def test_connection_string_follows_redirect_chain():
    builder = DistributedApplicationBuilder(HostingSettings())
    target = _StaticConnection("db", "Server=db")
    middle = builder.add_functions("middle")
    front = builder.add_functions("front")

    middle.with_connection_string_redirection(target)
    front.with_connection_string_redirection(middle.resource)

    expression = resolve_connection_string_expression(front.resource)
    assert expression.get_value() == "Server=db"


def test_connection_string_redirect_cycle_is_detected():
    builder = DistributedApplicationBuilder(HostingSettings())
    first = builder.add_functions("first")
    second = builder.add_functions("second")
    first.with_connection_string_redirection(second.resource)
    second.with_connection_string_redirection(first.resource)

    with pytest.raises(ConnectionStringRedirectError):
        resolve_connection_string_expression(first.resource)


def test_functions_resource_without_redirect_has_no_connection_string():
    with pytest.raises(ConnectionStringRedirectError):
        resolve_connection_string_expression(FunctionsResource("api"))


def test_bicep_resource_without_template_fails(tmp_path):
    resource = AzureBicepResource("empty")

    with pytest.raises(ValueError):
        resource.get_bicep_template_file(tmp_path)

    templated = AzureBicepResource("static", template_string="targetScope = 'resourceGroup'\n")
    path = templated.get_bicep_template_file(tmp_path)
    assert path.name == "static.module.bicep"
    assert path.read_text(encoding="utf-8") == "targetScope = 'resourceGroup'\n"
