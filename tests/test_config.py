from __future__ import annotations

import unittest
from pathlib import Path

from scratchpromo.config import (
    CampaignConfig,
    DEFAULT_CAMPAIGN,
    InventoryPolicy,
    PrizeDefinition,
    PrizeKind,
    ROOT_DIR,
    load_settings,
)
from scratchpromo.errors import ConfigurationError


class CampaignConfigTests(unittest.TestCase):
    def test_default_prize_table_matches_campaign(self) -> None:
        table = [
            (p.id, p.name, p.kind, p.probability, p.inventory_limit)
            for p in DEFAULT_CAMPAIGN.prizes
        ]
        self.assertEqual(
            table,
            [
                ("none_1", "銘謝惠顧", PrizeKind.NONE, 0.38, None),
                ("none_2", "下次再加油", PrizeKind.NONE, 0.38, None),
                ("ext_1h", "1小時續時券", PrizeKind.WIN, 0.10, None),
                ("disc_50", "50元折價券", PrizeKind.WIN, 0.10, None),
                ("ext_2h", "2小時續時券", PrizeKind.WIN, 0.034, 30),
                ("free_2h", "2小時免費包廂卷", PrizeKind.WIN, 0.005, 15),
                ("free_4h", "4小時免費包廂卷", PrizeKind.WIN, 0.001, 5),
            ],
        )

    def test_limited_prizes_and_fallback(self) -> None:
        self.assertEqual(
            [p.id for p in DEFAULT_CAMPAIGN.limited_prizes],
            ["ext_2h", "free_2h", "free_4h"],
        )
        self.assertEqual(DEFAULT_CAMPAIGN.fallback_prize.id, "disc_50")

    def test_fallback_defaults_to_first_prize_when_missing(self) -> None:
        config = CampaignConfig(
            prizes=(
                PrizeDefinition("none_1", "銘謝惠顧", PrizeKind.NONE, 0.5),
                PrizeDefinition("free_4h", "4小時免費包廂卷", PrizeKind.WIN, 0.5, 1),
            )
        )
        self.assertEqual(config.fallback_prize.id, "none_1")

    def test_rooms_are_branch_dependent(self) -> None:
        self.assertEqual(len(DEFAULT_CAMPAIGN.branches), 6)
        self.assertIn("發", DEFAULT_CAMPAIGN.rooms_for("大林店"))
        self.assertNotIn("發", DEFAULT_CAMPAIGN.rooms_for("八德店"))
        self.assertEqual(DEFAULT_CAMPAIGN.rooms_for("不存在"), ())

    def test_probabilities_must_sum_to_one(self) -> None:
        with self.assertRaises(ConfigurationError):
            CampaignConfig(
                prizes=(
                    PrizeDefinition("a", "A", PrizeKind.NONE, 0.5),
                    PrizeDefinition("b", "B", PrizeKind.WIN, 0.4),
                )
            )

    def test_duplicate_ids_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            CampaignConfig(
                prizes=(
                    PrizeDefinition("a", "A", PrizeKind.NONE, 0.5),
                    PrizeDefinition("a", "B", PrizeKind.WIN, 0.5),
                )
            )

    def test_limited_fallback_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            CampaignConfig(fallback_prize_id="free_4h")

    def test_non_win_fallback_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            CampaignConfig(fallback_prize_id="none_1")

    def test_config_is_immutable(self) -> None:
        with self.assertRaises(AttributeError):
            DEFAULT_CAMPAIGN.grand_draw_min_hours = 2  # type: ignore[misc]


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings({})
        self.assertEqual(
            settings.database_url, f"sqlite:///{(ROOT_DIR / 'dev.db').resolve()}"
        )
        self.assertIs(settings.inventory_policy, InventoryPolicy.ENFORCED)
        self.assertIsNone(settings.admin_passphrase)
        self.assertEqual(settings.db_timeout_seconds, 5.0)
        self.assertFalse(settings.echo_sql)
        self.assertIs(settings.campaign, DEFAULT_CAMPAIGN)

    def test_environment_overrides(self) -> None:
        settings = load_settings(
            {
                "DB_URL": "postgresql+psycopg://promo@localhost/promo",
                "SCRATCHPROMO_ADMIN_PASSPHRASE": "secret",
                "SCRATCHPROMO_INVENTORY_POLICY": "Advisory",
                "SCRATCHPROMO_DB_TIMEOUT": "2.5",
                "SCRATCHPROMO_ECHO_SQL": "yes",
            }
        )
        self.assertEqual(settings.database_url, "postgresql+psycopg://promo@localhost/promo")
        self.assertEqual(settings.admin_passphrase, "secret")
        self.assertIs(settings.inventory_policy, InventoryPolicy.ADVISORY)
        self.assertEqual(settings.db_timeout_seconds, 2.5)
        self.assertTrue(settings.echo_sql)

    def test_relative_sqlite_url_resolved_against_project_root(self) -> None:
        settings = load_settings({"DB_URL": "sqlite:///./data/promo.db"})
        path = Path(settings.database_url[len("sqlite:///"):])
        self.assertEqual(path, (ROOT_DIR / "data" / "promo.db").resolve())

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_settings({"SCRATCHPROMO_INVENTORY_POLICY": "strict"})
        with self.assertRaises(ConfigurationError):
            load_settings({"SCRATCHPROMO_DB_TIMEOUT": "soon"})


if __name__ == "__main__":
    unittest.main()
