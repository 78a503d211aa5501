"""Azure resource declarations used by the functions integration."""

from __future__ import annotations

from typing import Optional

from provisioning.bicep import escape_string
from provisioning.construct import (
    BicepExpression,
    ProvisionedResource,
    ResourceModuleConstruct,
    to_bicep_identifier,
)


class FunctionApp(ProvisionedResource):
    """An App Service site running as a function app."""

    resource_type = "Microsoft.Web/sites"
    api_version = "2022-09-01"

    def __init__(
        self,
        construct: ResourceModuleConstruct,
        name: str,
        *,
        identifier: Optional[str] = None,
    ) -> None:
        # Site names are global, so the deployed name gets a resource-group scoped suffix.
        deployed_name = BicepExpression(
            f"toLower(take('{escape_string(name)}${{uniqueString(resourceGroup().id)}}', 60))"
        )
        super().__init__(construct, deployed_name, identifier=identifier or to_bicep_identifier(name))
        self.logical_name = name
        self.body["kind"] = "functionapp"
        self.properties["httpsOnly"] = True
        self.properties["siteConfig"] = {"minTlsVersion": "1.2", "ftpsState": "FtpsOnly"}

    @property
    def host_name(self) -> BicepExpression:
        return self.reference("properties.hostName")

    def list_keys(self) -> BicepExpression:
        return BicepExpression(f"{self.identifier}.listKeys({self.identifier}.apiVersion)")


class KeyVault(ProvisionedResource):
    resource_type = "Microsoft.KeyVault/vaults"
    api_version = "2022-07-01"

    @classmethod
    def from_existing(
        cls,
        construct: ResourceModuleConstruct,
        parameter_name: str,
        *,
        identifier: str = "keyVault",
    ) -> "KeyVault":
        """Reference a vault that already exists, named by a construct parameter.

        The vault is never created here; a missing vault only surfaces when the
        template is deployed.
        """

        if construct.get_parameter(parameter_name) is None:
            raise ValueError(
                f"Parameter '{parameter_name}' must be declared before referencing an existing key vault."
            )
        return cls(
            construct,
            BicepExpression(parameter_name),
            identifier=identifier,
            existing=True,
        )


class KeyVaultSecret(ProvisionedResource):
    resource_type = "Microsoft.KeyVault/vaults/secrets"
    api_version = "2022-07-01"
    has_location = False

    def __init__(
        self,
        construct: ResourceModuleConstruct,
        key_vault: KeyVault,
        name: str,
        *,
        identifier: Optional[str] = None,
    ) -> None:
        super().__init__(
            construct,
            name,
            identifier=identifier or f"keyVaultSecret_{name}",
            parent=key_vault,
        )
        del self.body["tags"]


__all__ = ["FunctionApp", "KeyVault", "KeyVaultSecret"]
