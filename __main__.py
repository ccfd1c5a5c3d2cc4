import time

import pulumi
from config import Config, load_config
from dynamic_config import ConfigResolver, StatsigClient
from exporter import ResultExporter
from gcpclassic import CloudRunBackend
from orchestrator import ProvisioningInputs, ProvisionOrchestrator


def deployment_id(project: str, stack: str, now_ms: int) -> str:
    return f"{project}-{stack}-{now_ms}"


def build_orchestrator(config: Config, stack: str) -> ProvisionOrchestrator:
    settings = config.dynamic_config
    resolver = ConfigResolver(
        lambda: StatsigClient(
            settings.server_key,
            environment=settings.environment,
            global_fields={"region": stack},
            timeout=settings.timeout,
        )
    )
    return ProvisionOrchestrator(
        backend=CloudRunBackend(),
        config_resolver=resolver,
        config_name=settings.name,
        field_name=settings.field_name,
        default_env_vars=settings.default,
        service_prefix=config.service,
    )


def main():
    # Load YAML configuration.
    config = load_config("config.yaml")

    stack = pulumi.get_stack()
    gcp_config = pulumi.Config("gcp")
    inputs = ProvisioningInputs(
        project_id=gcp_config.get("project") or "",
        region=gcp_config.get("region") or "",
        image=config.image,
    )
    identity_key = deployment_id(pulumi.get_project(), stack, int(time.time() * 1000))

    orchestrator = build_orchestrator(config, stack)
    try:
        result = orchestrator.run(inputs, identity_key)
    except Exception as e:
        pulumi.log.error(f"Failed during deployment: {e}")
        raise

    ResultExporter().publish(result)


if __name__ == "__main__":
    main()
