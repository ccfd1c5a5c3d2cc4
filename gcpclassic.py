import pulumi
import pulumi_gcp as gcp
from typing import Any, Optional

from orchestrator import AccessBinding, ProvisioningBackend, ResourceDescriptor, ServiceHandle


def first_status_url(statuses: Any) -> Optional[str]:
    if not statuses:
        return None
    return statuses[0].url


class CloudRunBackend(ProvisioningBackend):
    """Provisions Cloud Run services with the classic ``pulumi_gcp`` provider."""

    def __init__(self, opts: Optional[pulumi.ResourceOptions] = None):
        self.opts = opts

    def create_service(self, descriptor: ResourceDescriptor) -> ServiceHandle:
        envs = [
            gcp.cloudrun.ServiceTemplateSpecContainerEnvArgs(name=name, value=value)
            for name, value in descriptor.env_vars
        ]
        service = gcp.cloudrun.Service(
            descriptor.name,
            location=descriptor.location,
            template=gcp.cloudrun.ServiceTemplateArgs(
                spec=gcp.cloudrun.ServiceTemplateSpecArgs(
                    containers=[
                        gcp.cloudrun.ServiceTemplateSpecContainerArgs(
                            image=descriptor.image,
                            envs=envs,
                        )
                    ],
                ),
            ),
            opts=self.opts,
        )
        pulumi.log.info(f"Created resource: {descriptor.name} (cloudrun.Service)")
        return ServiceHandle(
            logical_name=descriptor.name,
            name=service.name,
            location=service.location,
            project=service.project,
            url=service.statuses.apply(first_status_url),
            resource=service,
        )

    def get_iam_policy(self, binding: AccessBinding) -> pulumi.Output:
        """Render the policy document for ``binding``. Read-only lookup."""
        return gcp.organizations.get_iam_policy_output(
            bindings=[
                gcp.organizations.GetIAMPolicyBindingArgs(
                    role=binding.role,
                    members=sorted(binding.members),
                )
            ]
        ).policy_data

    def create_access_policy(self, binding: AccessBinding) -> gcp.cloudrun.IamPolicy:
        service = binding.service
        policy_name = f"noauth-{service.logical_name}"
        policy = gcp.cloudrun.IamPolicy(
            policy_name,
            location=service.location,
            project=service.project,
            service=service.name,
            policy_data=self.get_iam_policy(binding),
            opts=self.opts,
        )
        pulumi.log.info(f"Created resource: {policy_name} (cloudrun.IamPolicy)")
        return policy
