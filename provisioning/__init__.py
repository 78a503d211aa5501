"""Minimal provisioning model: constructs, Azure resource declarations, Bicep output."""

from provisioning.bicep import render_bicep
from provisioning.construct import (
    BicepExpression,
    ConstructFinalizedError,
    Parameter,
    ProvisionedResource,
    ResourceModuleConstruct,
)
from provisioning.resources import FunctionApp, KeyVault, KeyVaultSecret

__all__ = [
    "BicepExpression",
    "ConstructFinalizedError",
    "FunctionApp",
    "KeyVault",
    "KeyVaultSecret",
    "Parameter",
    "ProvisionedResource",
    "ResourceModuleConstruct",
    "render_bicep",
]
