"""Azure resources deployed through Bicep modules."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from adapters.manifest_store import write_text_file
from core.annotations import ResourceAnnotation
from core.application import DistributedApplicationBuilder, DistributedApplicationModel, ResourceBuilder
from core.expressions import BicepOutputReference, BicepSecretOutputReference, ValueProvider
from core.models import BicepManifestResource
from core.resources import Resource, ResourceWithConnectionString
from provisioning.construct import ResourceModuleConstruct

logger = logging.getLogger(__name__)

BICEP_MANIFEST_TYPE = "azure.bicep.v0"
PROVISIONER_SERVICE_KEY = "azure_provisioner"


class KnownParameters:
    """Parameter names whose values are supplied by the deployment tooling."""

    KEY_VAULT_NAME = "keyVaultName"


def _manifest_parameter_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, ValueProvider):
        return value.value_expression
    return str(value)


class AzureBicepResource(Resource):
    """A resource whose infrastructure is described by a Bicep template."""

    def __init__(self, name: str, *, template_string: Optional[str] = None) -> None:
        super().__init__(name)
        self._template_string = template_string
        self._init_bicep_state()

    def _init_bicep_state(self) -> None:
        self.parameters: Dict[str, Any] = {}
        self.outputs: Dict[str, Optional[str]] = {}
        self.secret_outputs: Dict[str, Optional[str]] = {}

    def get_output(self, name: str) -> BicepOutputReference:
        return BicepOutputReference(name, self)

    def get_secret_output(self, name: str) -> BicepSecretOutputReference:
        return BicepSecretOutputReference(name, self)

    def get_bicep_template_string(self) -> str:
        if self._template_string is None:
            raise ValueError(f"Resource '{self.name}' has no Bicep template.")
        return self._template_string

    @property
    def template_file_name(self) -> str:
        return f"{self.name}.module.bicep"

    def get_bicep_template_file(self, directory: str | Path) -> Path:
        """Write the template as ``<name>.module.bicep`` inside ``directory``."""

        return write_text_file(Path(directory) / self.template_file_name, self.get_bicep_template_string())

    def write_to_manifest(self, context: Any) -> None:
        template_path = context.add_file(
            context.manifest_directory / self.template_file_name, self.get_bicep_template_string()
        )
        connection_string = None
        if isinstance(self, ResourceWithConnectionString):
            connection_string = self.connection_string_expression
        entry = BicepManifestResource(
            type=BICEP_MANIFEST_TYPE,
            connection_string=connection_string.value_expression if connection_string is not None else None,
            path=context.get_manifest_relative_path(template_path),
            params={key: _manifest_parameter_value(value) for key, value in self.parameters.items()},
        )
        context.write_entry(entry)


class AzureConstructResource(AzureBicepResource):
    """A Bicep resource whose template is generated from a construct callback."""

    def __init__(self, name: str, configure_construct: Callable[[ResourceModuleConstruct], None]) -> None:
        super().__init__(name)
        self.configure_construct = configure_construct

    def build_construct(self) -> ResourceModuleConstruct:
        """Create a fresh construct, populate it once and freeze it.

        Any exception raised while populating propagates and the construct is
        discarded.
        """

        construct = ResourceModuleConstruct(self)
        self.configure_construct(construct)
        construct.build()
        return construct

    def get_bicep_template_string(self) -> str:
        return self.build_construct().build()


@dataclass(eq=False)
class AzureBicepResourceAnnotation(ResourceAnnotation):
    """Points a locally-run resource at the Azure resource that replaces it."""

    resource: AzureBicepResource


class AzureBicepResourceBuilder(ResourceBuilder):
    def with_parameter(self, name: str, value: Any = None) -> "AzureBicepResourceBuilder":
        self.resource.parameters[name] = value
        return self


class AzureProvisioner:
    """Tracks the Azure resources a local run needs provisioned.

    Actual deployment happens outside this package; the provisioner only finds
    the resources to deploy and records the outputs reported back for them.
    """

    def pending_resources(self, model: DistributedApplicationModel) -> List[AzureBicepResource]:
        pending: List[AzureBicepResource] = []
        for resource in model:
            if isinstance(resource, AzureBicepResource):
                pending.append(resource)
                continue
            annotation = resource.annotations.single_or_none(AzureBicepResourceAnnotation)
            if annotation is not None:
                pending.append(annotation.resource)
        return pending

    def apply_outputs(
        self,
        resource: AzureBicepResource,
        outputs: Optional[Mapping[str, Optional[str]]] = None,
        secret_outputs: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        resource.outputs.update(outputs or {})
        resource.secret_outputs.update(secret_outputs or {})
        logger.info(
            "[provision] Recorded %d output(s) and %d secret output(s) for '%s'.",
            len(outputs or {}),
            len(secret_outputs or {}),
            resource.name,
        )


def add_azure_provisioning(builder: DistributedApplicationBuilder) -> AzureProvisioner:
    """Register the Azure provisioner once per application builder."""

    provisioner = builder.services.get(PROVISIONER_SERVICE_KEY)
    if provisioner is None:
        provisioner = AzureProvisioner()
        builder.services[PROVISIONER_SERVICE_KEY] = provisioner
        logger.debug("Registered Azure provisioner.")
    return provisioner


__all__ = [
    "AzureBicepResource",
    "AzureBicepResourceAnnotation",
    "AzureBicepResourceBuilder",
    "AzureConstructResource",
    "AzureProvisioner",
    "BICEP_MANIFEST_TYPE",
    "KnownParameters",
    "add_azure_provisioning",
]
