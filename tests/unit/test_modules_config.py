import pytest

from app.gymdesk.core.modules import MODULE_NAMES, SubscriptionTier, resolve_modules_config


def test_basic_tier_only_enables_pos():
    config = resolve_modules_config(SubscriptionTier.BASIC)
    assert config.as_dict() == {
        "pos": True,
        "qr_access": False,
        "gamification": False,
        "classes": False,
        "biometrics": False,
    }


def test_premium_tier_enables_everything():
    config = resolve_modules_config("PREMIUM_BIO")
    assert all(config.is_enabled(name) for name in MODULE_NAMES)


def test_pro_tier_excludes_biometrics():
    config = resolve_modules_config("PRO_QR")
    assert config.is_enabled("qr_access")
    assert not config.is_enabled("biometrics")


def test_overrides_apply_on_top_of_tier_and_ignore_unknown_keys():
    config = resolve_modules_config("BASIC", {"pos": False, "classes": 1, "vending": True})
    assert not config.is_enabled("pos")
    assert config.is_enabled("classes")
    assert "vending" not in config.as_dict()


def test_unknown_tier_falls_back_to_basic():
    assert resolve_modules_config("ENTERPRISE") == resolve_modules_config("BASIC")
    assert resolve_modules_config(None) == resolve_modules_config("BASIC")


def test_unknown_module_name_is_rejected():
    with pytest.raises(KeyError):
        resolve_modules_config("BASIC").is_enabled("vending")
