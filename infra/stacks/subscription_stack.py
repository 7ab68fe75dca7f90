"""
Subscription-scope stack.

Deployed separately from the resource-group stack once the workspace id
is known. Its failure never affects the resource-group stack's state.
"""

from __future__ import annotations

from constructs import Construct
from cdktf import TerraformOutput, TerraformStack

from cdktf_cdktf_provider_azurerm.data_azurerm_subscription import (
    DataAzurermSubscription,
)
from cdktf_cdktf_provider_azurerm.provider import AzurermProvider

from iac_types import SubscriptionConfig
from modules.defender.defender import (
    enabled_defender_plans,
    provision_activity_log,
    provision_defender_pricing,
)


class LabSubscriptionStack(TerraformStack):
    def __init__(self, scope: Construct, id: str, config: SubscriptionConfig) -> None:
        super().__init__(scope, id)

        AzurermProvider(self, "azurerm", features=[{}])
        current = DataAzurermSubscription(self, "current")

        provision_defender_pricing(scope=self, cfg=config)
        activity_log = provision_activity_log(
            scope=self, cfg=config, subscription_id=current.id
        )

        plans = enabled_defender_plans(config)
        TerraformOutput(self, "defenderPlans", value=",".join(plans) if plans else "none")
        TerraformOutput(self, "activityLogSetting", value=activity_log.name)
        TerraformOutput(self, "deploymentLocation", value=config.location)
