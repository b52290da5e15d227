from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum


class SubscriptionTier(str, Enum):
    BASIC = "BASIC"
    PRO_QR = "PRO_QR"
    PREMIUM_BIO = "PREMIUM_BIO"


@dataclass(frozen=True)
class ModulesConfig:
    pos: bool
    qr_access: bool
    gamification: bool
    classes: bool
    biometrics: bool

    def is_enabled(self, module: str) -> bool:
        if module not in MODULE_NAMES:
            raise KeyError(module)
        return bool(getattr(self, module))

    def as_dict(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in MODULE_NAMES}


MODULE_NAMES = tuple(field.name for field in fields(ModulesConfig))

TIER_MODULES: dict[SubscriptionTier, ModulesConfig] = {
    SubscriptionTier.BASIC: ModulesConfig(
        pos=True,
        qr_access=False,
        gamification=False,
        classes=False,
        biometrics=False,
    ),
    SubscriptionTier.PRO_QR: ModulesConfig(
        pos=True,
        qr_access=True,
        gamification=True,
        classes=True,
        biometrics=False,
    ),
    SubscriptionTier.PREMIUM_BIO: ModulesConfig(
        pos=True,
        qr_access=True,
        gamification=True,
        classes=True,
        biometrics=True,
    ),
}


def resolve_modules_config(tier: str | SubscriptionTier | None, overrides: dict | None = None) -> ModulesConfig:
    """Tier defaults, then per-tenant boolean overrides for known modules."""
    try:
        resolved_tier = SubscriptionTier(tier) if tier else SubscriptionTier.BASIC
    except ValueError:
        resolved_tier = SubscriptionTier.BASIC
    config = TIER_MODULES[resolved_tier]
    if overrides:
        known = {key: bool(value) for key, value in overrides.items() if key in MODULE_NAMES}
        config = replace(config, **known)
    return config
