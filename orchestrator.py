"""
Provisioning pipeline for one ColorTeller deployment.

The run is an explicit state machine:

    INIT -> INPUTS_VALIDATED -> CONFIG_RESOLVED -> RESOURCE_CREATED
         -> POLICY_BOUND -> COMPLETE

Any fatal error stops the run in ``FAILED`` with ``failed_stage`` set to the
stage that could not be reached. Nothing already created is rolled back. The
dynamic config session is held across the resolve/create/bind steps and is
released exactly once whatever happens.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import pulumi

from dynamic_config import ConfigResolver, DynamicConfigUnavailable

INVOKER_ROLE = "roles/run.invoker"
ALL_USERS = "allUsers"


class Stage(Enum):
    INIT = "Init"
    INPUTS_VALIDATED = "InputsValidated"
    CONFIG_RESOLVED = "ConfigResolved"
    RESOURCE_CREATED = "ResourceCreated"
    POLICY_BOUND = "PolicyBound"
    COMPLETE = "Complete"
    FAILED = "Failed"


class ProvisioningError(Exception):
    def __init__(self, stage: Stage, message: str):
        super().__init__(f"{stage.value}: {message}")
        self.stage = stage
        self.message = message


class InputValidationError(ProvisioningError):
    def __init__(self, field_name: str):
        super().__init__(Stage.INPUTS_VALIDATED, f"{field_name} configuration is required")
        self.field_name = field_name


class ConfigSessionError(ProvisioningError):
    def __init__(self, message: str):
        super().__init__(Stage.CONFIG_RESOLVED, message)


@dataclass(frozen=True)
class ProvisioningInputs:
    project_id: str
    region: str
    image: str

    def validate(self) -> None:
        for field_name, value in (("gcp:project", self.project_id), ("gcp:region", self.region), ("image", self.image)):
            if not value:
                raise InputValidationError(field_name)


@dataclass(frozen=True)
class ResourceDescriptor:
    name: str
    location: str
    image: str
    env_vars: Tuple[Tuple[str, str], ...]

    def env_list(self) -> List[Dict[str, str]]:
        return [{"name": name, "value": value} for name, value in self.env_vars]


@dataclass(frozen=True)
class ServiceHandle:
    """What the backend hands back for a created service. Attribute values may be
    plain strings or ``pulumi.Output``s depending on the backend."""

    logical_name: str
    name: Any
    location: Any
    project: Any
    url: Any
    resource: Any = None


@dataclass(frozen=True)
class AccessBinding:
    service: ServiceHandle
    role: str = INVOKER_ROLE
    members: frozenset = frozenset({ALL_USERS})


@dataclass(frozen=True)
class OrchestrationResult:
    service_url: Any
    project_id: str
    region: str


class ProvisioningBackend:
    """Interface of the resource provisioning backend."""

    def create_service(self, descriptor: ResourceDescriptor) -> ServiceHandle:
        raise NotImplementedError

    def create_access_policy(self, binding: AccessBinding) -> Any:
        raise NotImplementedError


def service_name(region: str, prefix: str = "colorteller") -> str:
    return f"{prefix}-{region}"


def normalize_env_vars(env_vars: Any) -> Tuple[Tuple[str, str], ...]:
    """Turn ``[{"name": .., "value": ..}, ...]`` into an ordered tuple of pairs."""
    pairs = []
    for entry in env_vars or []:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ValueError(f"Invalid environment variable entry: {entry!r}")
        pairs.append((str(entry["name"]), str(entry.get("value", ""))))
    return tuple(pairs)


@dataclass
class ProvisionOrchestrator:
    backend: ProvisioningBackend
    config_resolver: ConfigResolver
    config_name: str = "colorteller-cloudrun"
    field_name: str = "envVars"
    default_env_vars: List[Dict[str, str]] = field(default_factory=lambda: [{"name": "COLOR", "value": "blue"}])
    service_prefix: str = "colorteller"

    stage: Stage = field(default=Stage.INIT, init=False)
    failed_stage: Optional[Stage] = field(default=None, init=False)
    history: List[Stage] = field(default_factory=lambda: [Stage.INIT], init=False)
    env_vars: Optional[List[Dict[str, str]]] = field(default=None, init=False)
    descriptor: Optional[ResourceDescriptor] = field(default=None, init=False)
    service: Optional[ServiceHandle] = field(default=None, init=False)
    binding: Optional[AccessBinding] = field(default=None, init=False)
    policy: Any = field(default=None, init=False)

    def _advance(self, stage: Stage) -> None:
        self.stage = stage
        self.history.append(stage)
        pulumi.log.info(f"Provisioning reached stage {stage.value}")

    def _fail(self, stage: Stage) -> None:
        self.failed_stage = stage
        self.stage = Stage.FAILED
        self.history.append(Stage.FAILED)

    def _next_stage(self) -> Stage:
        order = list(Stage)
        return order[order.index(self.stage) + 1]

    def run(self, inputs: ProvisioningInputs, identity_key: str) -> OrchestrationResult:
        if self.stage is not Stage.INIT:
            raise RuntimeError("ProvisionOrchestrator runs once per deployment")
        try:
            return self._run(inputs, identity_key)
        except ProvisioningError as e:
            self._fail(e.stage)
            pulumi.log.error(f"Provisioning failed at {e.stage.value}: {e.message}")
            raise

    def _run(self, inputs: ProvisioningInputs, identity_key: str) -> OrchestrationResult:
        inputs.validate()
        self._advance(Stage.INPUTS_VALIDATED)

        try:
            with self.config_resolver.session() as session:
                self._provision(inputs, identity_key, session)
        except ProvisioningError:
            raise
        except DynamicConfigUnavailable as e:
            raise ConfigSessionError(str(e)) from e
        except Exception as e:
            raise ProvisioningError(self._next_stage(), f"Unexpected error: {e}") from e

        self._advance(Stage.COMPLETE)
        return OrchestrationResult(service_url=self.service.url, project_id=inputs.project_id, region=inputs.region)

    def _provision(self, inputs: ProvisioningInputs, identity_key: str, session) -> None:
        env_vars = self.config_resolver.resolve(
            self.config_name, identity_key, self.field_name, self.default_env_vars, session=session
        )
        try:
            env_pairs = normalize_env_vars(env_vars)
        except ValueError as e:
            raise ProvisioningError(Stage.CONFIG_RESOLVED, str(e)) from e
        self.env_vars = [{"name": n, "value": v} for n, v in env_pairs]
        self._advance(Stage.CONFIG_RESOLVED)

        self.descriptor = ResourceDescriptor(
            name=service_name(inputs.region, self.service_prefix),
            location=inputs.region,
            image=inputs.image,
            env_vars=env_pairs,
        )
        try:
            self.service = self.backend.create_service(self.descriptor)
        except Exception as e:
            raise ProvisioningError(Stage.RESOURCE_CREATED, f"Failed to create service '{self.descriptor.name}': {e}") from e
        self._advance(Stage.RESOURCE_CREATED)

        self.binding = AccessBinding(service=self.service)
        try:
            self.policy = self.backend.create_access_policy(self.binding)
        except Exception as e:
            raise ProvisioningError(Stage.POLICY_BOUND, f"Failed to bind invoker policy to '{self.descriptor.name}': {e}") from e
        self._advance(Stage.POLICY_BOUND)
