"""Apple orchard example content.

Run ``python examples/apple_orchard.py > orchard.json`` to get a content
file for ``idlecore validate`` or ``python -m idlecore.mcp``.
"""
from __future__ import annotations

import json
from typing import Any


def define_content() -> dict[str, Any]:
    return {
        "name": "Apple Orchard",
        "resources": [
            {"id": "currencySoft", "displayName": "Cash", "kind": "softCurrency"},
            {"id": "gems", "displayName": "Gems", "kind": "hardCurrency"},
            {"id": "currencyMeta", "displayName": "Seeds", "kind": "metaCurrency"},
        ],
        "nodes": [
            {
                "id": "apple",
                "type": "generator",
                "displayName": "Apple Stand",
                "zoneId": "orchard",
                "tags": ["fruit"],
                "cycle": {"baseDurationSeconds": 2},
                "outputs": [
                    {"resource": "currencySoft", "mode": "perCycle", "amountPerCycle": 1}
                ],
                "leveling": {
                    "levelResource": "currencySoft",
                    "baseLevel": 0,
                    "maxLevel": 100,
                    "priceCurve": {"type": "exponential", "basePrice": 10, "growth": 1.15},
                },
            },
            {
                "id": "lemonade",
                "type": "generator",
                "displayName": "Lemonade Stand",
                "zoneId": "orchard",
                "tags": ["drink"],
                "cycle": {"baseDurationSeconds": 5},
                "outputs": [
                    {"resource": "currencySoft", "mode": "perSecond", "basePerSecond": 2}
                ],
                "leveling": {
                    "levelResource": "currencySoft",
                    "priceCurve": {"type": "linear", "basePrice": 50, "increment": 25},
                },
            },
        ],
        "nodeInstances": [
            {
                "id": "apple_1",
                "nodeId": "apple",
                "zoneId": "orchard",
                "initialState": {"level": 1, "enabled": True},
            },
            {
                "id": "lemonade_1",
                "nodeId": "lemonade",
                "zoneId": "orchard",
                "initialState": {"level": 0, "enabled": True},
            },
        ],
        "modifiers": [
            {
                "id": "mod.apple.speed",
                "source": "upgrade.upg.apple.speed",
                "scope": {"kind": "node", "nodeId": "apple"},
                "operation": "multiply",
                "target": "nodeSpeedMultiplier",
                "value": 2,
            },
            {
                "id": "mod.apple.output25",
                "source": "milestone.milestone.apple.25",
                "scope": {"kind": "nodeTag", "nodeTag": "fruit"},
                "operation": "multiply",
                "target": "nodeOutput[currencySoft]",
                "value": 3,
            },
            {
                "id": "mod.gain.sugar",
                "source": "buff.buff.sugar_rush",
                "scope": {"kind": "resource", "resource": "currencySoft"},
                "operation": "multiply",
                "target": "resourceGain[currencySoft]",
                "value": 1.5,
            },
            {
                "id": "mod.lemonade.auto",
                "source": "upgrade.upg.lemonade.auto",
                "scope": {"kind": "node", "nodeId": "lemonade"},
                "operation": "set",
                "target": "automation.policy",
                "value": 1,
            },
        ],
        "upgrades": [
            {
                "id": "upg.apple.speed",
                "displayName": "Faster Pickers",
                "category": "speed",
                "zoneId": "orchard",
                "cost": [{"resource": "currencySoft", "amount": "100"}],
                "effects": [{"modifierId": "mod.apple.speed"}],
            },
            {
                "id": "upg.lemonade.auto",
                "displayName": "Lemonade Manager",
                "category": "automation",
                "zoneId": "orchard",
                "cost": [{"resource": "currencySoft", "amount": "1,000"}],
                "effects": [{"modifierId": "mod.lemonade.auto"}],
            },
        ],
        "milestones": [
            {"id": "milestone.apple.10", "nodeId": "apple", "zoneId": "orchard", "atLevel": 10},
            {
                "id": "milestone.apple.25",
                "nodeId": "apple",
                "zoneId": "orchard",
                "atLevel": 25,
                "grantEffects": [{"modifierId": "mod.apple.output25"}],
            },
        ],
        "buffs": [
            {
                "id": "buff.sugar_rush",
                "displayName": "Sugar Rush",
                "zoneId": "orchard",
                "durationSeconds": 60,
                "stacking": "refresh",
                "effects_json": '[{"modifierId": "mod.gain.sugar"}]',
            }
        ],
        "buyModes": [
            {"id": "x1", "displayName": "x1", "kind": "fixed", "fixedCount": 1},
            {"id": "x10", "displayName": "x10", "kind": "fixed", "fixedCount": 10},
            {"id": "max", "displayName": "Max", "kind": "maxAffordable"},
        ],
        "triggers": [
            {
                "id": "trig.apple.25",
                "eventType": "milestone.fired",
                "conditions": [
                    {"type": "milestoneIdEquals", "args": {"milestoneId": "milestone.apple.25"}}
                ],
                "actions": [{"type": "rollRewardPool", "rewardPoolId": "pool.apple.25"}],
            }
        ],
        "rewardPools": [
            {
                "id": "pool.apple.25",
                "rewards": [
                    {
                        "weight": 1,
                        "action": {
                            "type": "grantResource",
                            "resourceId": "currencySoft",
                            "amount": 500,
                        },
                    },
                    {
                        "weight": 3,
                        "action": {"type": "grantResource", "resourceId": "gems", "amount": 1},
                    },
                ],
            }
        ],
        "unlockGraph": [
            {
                "id": "unlock.lemonade",
                "zoneId": "orchard",
                "targetNodeInstanceId": "lemonade_1",
                "requirements": [
                    {"type": "nodeLevelAtLeast", "nodeInstanceId": "apple_1", "minLevel": 10}
                ],
            }
        ],
        "computedVars": [
            {"id": "prestigeGain", "dependsOn": ["lifetimeEarnings[currencySoft]"]}
        ],
        "prestige": {
            "enabled": True,
            "zoneId": "orchard",
            "prestigeResource": "currencyMeta",
            "formula": {
                "type": "sqrt",
                "basedOn": "lifetimeEarnings[currencySoft]",
                "multiplier": 0.1,
                "offset": 0,
            },
            "resetScopes": {"resources": True, "nodes": True, "upgrades": True},
            "metaUpgrades": [
                {
                    "id": "meta.income",
                    "computed": {
                        "type": "linear",
                        "basedOn": "resource[currencyMeta]",
                        "multiplier": 0.1,
                        "offset": 1,
                    },
                    "writesToState": "incomeMultiplier",
                }
            ],
        },
    }


if __name__ == "__main__":
    print(json.dumps(define_content(), indent=2))
