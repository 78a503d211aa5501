# File: providers/azure_functions.py
# Version: 1.0.0
# Last Modified: 2026-10-18
# Summary: Publishes functions resources as Azure Functions backed by a Bicep module.
"""Azure Functions integration for the application model.

Two entry points configure a :class:`~core.resources.FunctionsResource`:

* :func:`publish_as_azure_functions` only affects manifest generation.
* :func:`as_azure_functions` additionally makes the local run use the Azure
  deployment: connection strings are redirected to the Azure resource and the
  container image annotation is dropped so the app is not also started as a
  container.

Each should be called at most once per resource; neither guards against being
called twice or together with the other.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from core.annotations import ContainerImageAnnotation
from core.application import ResourceBuilder
from core.expressions import BicepSecretOutputReference, ReferenceExpression
from core.resources import FunctionsResource
from provisioning.construct import BicepExpression, Parameter, ResourceModuleConstruct, to_bicep_identifier
from provisioning.resources import FunctionApp, KeyVault, KeyVaultSecret
from providers.azure_bicep import (
    AzureBicepResourceAnnotation,
    AzureBicepResourceBuilder,
    AzureConstructResource,
    KnownParameters,
    add_azure_provisioning,
)

logger = logging.getLogger(__name__)

RESOURCE_NAME_TAG = "aspire-resource-name"
CONNECTION_STRING_SECRET = "connectionString"
KEY_VAULT_SYMBOL = "keyVault"
CONNECTION_STRING_SECRET_SYMBOL = f"keyVaultSecret_{CONNECTION_STRING_SECRET}"

ConfigureResource = Callable[[AzureBicepResourceBuilder, ResourceModuleConstruct, FunctionApp], None]


class AzureFunctionsResource(AzureConstructResource):
    """Presents a functions resource as a connection-string-bearing Azure resource.

    Name and annotations are read from the wrapped resource on every access.
    """

    def __init__(
        self,
        inner_resource: FunctionsResource,
        configure_construct: Callable[[ResourceModuleConstruct], None],
    ) -> None:
        if inner_resource is None:
            raise TypeError("inner_resource must not be None.")
        # Identity and annotations belong to the inner resource; only the
        # Bicep state is initialised here.
        self._inner_resource = inner_resource
        self.configure_construct = configure_construct
        self._init_bicep_state()

    @property
    def inner_resource(self) -> FunctionsResource:
        return self._inner_resource

    @property
    def name(self) -> str:
        return self._inner_resource.name

    @property
    def annotations(self):
        return self._inner_resource.annotations

    @property
    def connection_string(self) -> BicepSecretOutputReference:
        return BicepSecretOutputReference(CONNECTION_STRING_SECRET, self)

    @property
    def connection_string_expression(self) -> ReferenceExpression:
        return ReferenceExpression.create(self.connection_string)


def connection_string_value(function_app: FunctionApp) -> BicepExpression:
    """Bicep expression for the connection string stored in the key vault.

    Consumers rely on the field order: host name, ``ssl=true``, password.
    """

    return BicepExpression(
        f"'${{{function_app.host_name}}},ssl=true,"
        f"password=${{{function_app.list_keys()}.primaryKey}}'"
    )


def _publish_as_azure_functions(
    builder: ResourceBuilder[FunctionsResource],
    configure_resource: Optional[ConfigureResource],
    *,
    use_provisioner: bool,
) -> ResourceBuilder[FunctionsResource]:
    application_builder = builder.application_builder
    add_azure_provisioning(application_builder)

    def configure_construct(construct: ResourceModuleConstruct) -> None:
        name = builder.resource.name
        # The function app is declared first, so keep its symbol clear of the ones declared after it.
        identifier = construct.unique_symbol(
            to_bicep_identifier(name),
            reserved=(KnownParameters.KEY_VAULT_NAME, KEY_VAULT_SYMBOL, CONNECTION_STRING_SECRET_SYMBOL),
        )
        function_app = FunctionApp(construct, name, identifier=identifier)
        function_app.tags[RESOURCE_NAME_TAG] = construct.resource.name

        construct.add_parameter(Parameter(KnownParameters.KEY_VAULT_NAME))
        key_vault = KeyVault.from_existing(
            construct, KnownParameters.KEY_VAULT_NAME, identifier=KEY_VAULT_SYMBOL
        )

        secret = KeyVaultSecret(
            construct, key_vault, CONNECTION_STRING_SECRET, identifier=CONNECTION_STRING_SECRET_SYMBOL
        )
        secret.assign_property("properties.value", connection_string_value(function_app))

        if configure_resource is not None:
            resource_builder = application_builder.create_resource_builder(
                construct.resource, AzureBicepResourceBuilder
            )
            configure_resource(resource_builder, construct, function_app)

    resource = AzureFunctionsResource(builder.resource, configure_construct)
    (
        application_builder.create_resource_builder(resource, AzureBicepResourceBuilder)
        .with_parameter(KnownParameters.KEY_VAULT_NAME)
        .with_manifest_publishing_callback(resource.write_to_manifest)
    )

    if use_provisioner:
        builder.with_annotation(AzureBicepResourceAnnotation(resource))
        builder.with_connection_string_redirection(resource)

        container = builder.resource.annotations.single_or_none(ContainerImageAnnotation)
        if container is not None:
            builder.resource.annotations.remove(container)
            logger.debug(
                "[azure_functions] Removed container image annotation from '%s'.", builder.resource.name
            )

    logger.info(
        "[azure_functions] Configured '%s' as Azure Functions (use_provisioner=%s).",
        builder.resource.name,
        use_provisioner,
    )
    return builder


def publish_as_azure_functions(
    builder: ResourceBuilder[FunctionsResource],
    configure_resource: Optional[ConfigureResource] = None,
) -> ResourceBuilder[FunctionsResource]:
    """Publish the resource as Azure Functions when generating the manifest."""

    return _publish_as_azure_functions(builder, configure_resource, use_provisioner=False)


def as_azure_functions(
    builder: ResourceBuilder[FunctionsResource],
    configure_resource: Optional[ConfigureResource] = None,
) -> ResourceBuilder[FunctionsResource]:
    """Use Azure Functions both for local runs and for deployment."""

    return _publish_as_azure_functions(builder, configure_resource, use_provisioner=True)


__all__ = [
    "AzureFunctionsResource",
    "CONNECTION_STRING_SECRET",
    "RESOURCE_NAME_TAG",
    "as_azure_functions",
    "connection_string_value",
    "publish_as_azure_functions",
]
