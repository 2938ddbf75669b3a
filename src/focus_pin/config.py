"""Boost policy configuration for focus-pin.

BoostConfig holds the policy the supervisor applies to every focus change.
It is fixed at process start; there is no reload.

Example:
    ```python
    from focus_pin import BoostConfig

    # Pin focused VMs to all cores, skip VMs that already run on all cores
    config = BoostConfig()

    # Pin focused VMs to P-cores only, never touch VMs pinned to "0-1"
    config = BoostConfig(boost_mask="0-7", ignore_mask="0-1")
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from focus_pin import constants


class BoostConfig(BaseModel):
    """Configuration for the focus-to-pin supervisor.

    Attributes:
        boost_mask: Cores a focused VM is pinned to (all vCPUs). Default: "all".
        ignore_mask: Sentinel mask; a VM currently pinned to exactly this mask
            is never boosted. Default: "all", so VMs that are not pinned
            to a subset of cores are left alone.
        pin_privileged_domain: Whether dom0 itself is boosted when it gets
            focus. Default: False.
        privileged_domain: Name of the privileged domain. Default: "Domain-0".
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    boost_mask: str = Field(
        default=constants.DEFAULT_BOOST_MASK,
        min_length=1,
        description="Cores to pin focused VMs to",
    )
    ignore_mask: str = Field(
        default=constants.DEFAULT_IGNORE_MASK,
        min_length=1,
        description="VMs currently pinned to this mask are skipped",
    )
    pin_privileged_domain: bool = Field(
        default=False,
        description="Boost the privileged domain when it has focus",
    )
    privileged_domain: str = Field(
        default=constants.PRIVILEGED_DOMAIN,
        min_length=1,
        description="Name of the privileged (host) domain",
    )

    @field_validator("boost_mask", "ignore_mask")
    @classmethod
    def _validate_mask(cls, value: str) -> str:
        if not constants.CONFIG_MASK_PATTERN.fullmatch(value):
            raise ValueError(f"invalid CPU mask {value!r}: expected e.g. 'all', '0-3' or '2,4,6'")
        return value

    @field_validator("privileged_domain")
    @classmethod
    def _validate_domain(cls, value: str) -> str:
        if not constants.VM_NAME_PATTERN.fullmatch(value):
            raise ValueError(f"invalid domain name {value!r}")
        return value

    def is_privileged(self, vm: str | None) -> bool:
        """Whether vm names the privileged domain."""
        return vm == self.privileged_domain

    def should_boost_privileged(self, vm: str | None) -> bool:
        """False only for the privileged domain when pinning it is disabled."""
        return self.pin_privileged_domain or not self.is_privileged(vm)
