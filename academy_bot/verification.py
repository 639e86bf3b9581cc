#!/usr/bin/env python3
"""Academy gateway verification bot
----------------------------------
Grants the verified role to members who appear in the affiliate/referral
directory. Matching is by username (case-insensitive) or by referral code,
selected with AFFILIATE_MATCH_MODE.

Required env-vars: DISCORD_TOKEN, AFFILIATE_SESSION_COOKIE, VERIFIED_ROLE_ID
Optional: AFFILIATE_API_URL, AFFILIATE_PAGE_SIZE, AFFILIATE_MATCH_MODE,
AFFILIATE_TIMEOUT_SECONDS, AFFILIATE_CACHE_TTL_SECONDS,
AFFILIATE_FLATTEN_NESTED, AFFILIATE_RECORD_PATHS, DDB_TABLE_NAME, AWS_REGION
"""

import asyncio
import logging
import os
from typing import Final

import boto3
import discord
from discord import app_commands

from referral_gateway import verification as gateway
from referral_gateway.config import AffiliateApiConfig, read_affiliate_config
from referral_gateway.normalization import AffiliateRecord
from referral_gateway.resolver import AffiliateResolver

# ---------- Constants ----------
REFERRAL_LISTING_LIMIT: Final[int] = 20

# ---------- Environment ----------
DISCORD_TOKEN: Final[str | None] = os.getenv("DISCORD_TOKEN")
VERIFIED_ROLE_ID: Final[int | None] = (
    int(os.getenv("VERIFIED_ROLE_ID")) if os.getenv("VERIFIED_ROLE_ID") else None
)
DDB_TABLE_NAME: Final[str | None] = os.getenv("DDB_TABLE_NAME")
AWS_REGION: Final[str] = os.getenv("AWS_REGION", "us-east-1")

REQUIRED_VARS = (
    "DISCORD_TOKEN",
    "AFFILIATE_SESSION_COOKIE",
    "VERIFIED_ROLE_ID",
)

# ---------- Discord client ----------
intents = discord.Intents.default()
intents.guilds = True
intents.members = True

bot = discord.Client(intents=intents)
tree = app_commands.CommandTree(bot)

# ---------- Affiliate directory / AWS ----------
affiliate_config: AffiliateApiConfig = read_affiliate_config()
resolver: AffiliateResolver = gateway.build_resolver(affiliate_config)

dynamodb = boto3.resource("dynamodb", region_name=AWS_REGION)
table = dynamodb.Table(DDB_TABLE_NAME) if DDB_TABLE_NAME else None

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("academy-gateway")


# ---------- Messages ----------
def failure_message(identifier: str, reason: str | None) -> str:
    """User-facing text for a failed verification. Always names *identifier*."""
    if reason == "empty_identifier":
        return "❌ Verification failed – please enter your username or referral code."
    if reason == "not_found":
        return (
            f"❌ Verification failed – `{identifier}` was not found. "
            "Please check it and try again."
        )
    return (
        f"⚠️ Could not verify `{identifier}` right now – the referral service "
        "is unavailable. Please try again later."
    )


def format_referral_listing(
    records: list[AffiliateRecord], limit: int = REFERRAL_LISTING_LIMIT
) -> str:
    if not records:
        return "📋 No referrals found."

    lines = []
    for index, record in enumerate(records[:limit], start=1):
        name = record.display_name or record.email or ""
        line = f"{index}. Code: `{record.code_label}`"
        if name:
            line += f" - {name}"
        lines.append(line)

    body = f"**Referrals ({len(records)} total):**\n" + "\n".join(lines)
    if len(records) > limit:
        body += f"\n... and {len(records) - limit} more"
    return body


def store_verification(user: discord.abc.User, record: AffiliateRecord) -> None:
    if table is None:
        return
    try:
        table.put_item(
            Item={
                "discord_id": str(user.id),
                "discord_name": user.name,
                "affiliate_name": record.display_name,
                "referral_code": record.code_label,
            }
        )
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Failed to store verification: %s", exc)


# ---------- /verify command ----------
@tree.command(
    name="verify",
    description="Verify your referral to get academy access.",
)
@app_commands.describe(identifier="Your affiliate username or referral code")
async def verify(interaction: discord.Interaction, identifier: str) -> None:
    await interaction.response.defer(ephemeral=True)

    mode = affiliate_config.match_mode
    submitted = gateway.normalize_identifier(identifier, mode)
    result = await gateway.verify(resolver, submitted, mode)

    if not result.success:
        await interaction.followup.send(
            failure_message(submitted, result.reason), ephemeral=True
        )
        return

    if VERIFIED_ROLE_ID is None:
        await interaction.followup.send(
            "Setup error: verified role not configured – contact an admin.",
            ephemeral=True,
        )
        log.error("VERIFIED_ROLE_ID environment variable not set")
        return

    role = interaction.guild.get_role(VERIFIED_ROLE_ID)
    if role is None:
        await interaction.followup.send(
            "Setup error: verified role not found – contact an admin.", ephemeral=True
        )
        log.error(
            "Verified role ID %s not found in guild %s",
            VERIFIED_ROLE_ID,
            interaction.guild.id,
        )
        return

    try:
        await interaction.user.add_roles(role, reason="Passed referral verification")
    except discord.Forbidden:
        await interaction.followup.send(
            "🚫 Referral verified, but the bot lacks **Manage Roles** permission "
            "or the role hierarchy is incorrect. Please contact an admin.",
            ephemeral=True,
        )
        log.warning("Forbidden when adding role to %s", interaction.user)
        return
    except discord.HTTPException as exc:
        await interaction.followup.send(
            "Unexpected Discord error – try again later.", ephemeral=True
        )
        log.exception("HTTPException adding role: %s", exc)
        return

    store_verification(interaction.user, result.record)

    name = result.record.display_name or "member"
    await interaction.followup.send(
        f"✅ Referral verified! Welcome to the academy, {name}.", ephemeral=True
    )
    log.info("%s verified as %s", interaction.user, submitted)


# ---------- /check-referrals command ----------
@tree.command(
    name="check-referrals",
    description="List referrals from the affiliate directory (admin only).",
)
@app_commands.default_permissions(administrator=True)
async def check_referrals(interaction: discord.Interaction) -> None:
    await interaction.response.defer(ephemeral=True)

    records = await gateway.list_referrals(resolver)
    await interaction.followup.send(format_referral_listing(records), ephemeral=True)


# ---------- Lifecycle ----------
@bot.event
async def on_ready() -> None:
    await tree.sync()
    log.info(
        "Bot ready as %s (%s), matching by %s",
        bot.user,
        bot.user.id,
        affiliate_config.match_mode,
    )


async def main() -> None:
    missing = [v for v in REQUIRED_VARS if not os.getenv(v)]
    if missing:
        raise RuntimeError(f"Missing env vars: {', '.join(missing)}")

    async with bot:
        await bot.start(DISCORD_TOKEN)  # type: ignore[arg-type]


def configure_runtime(
    *,
    config: AffiliateApiConfig | None = None,
    resolver_override: AffiliateResolver | None = None,
    dynamodb_resource=None,
    table_name: str | None = None,
) -> None:
    """Reconfigure module globals, e.g. after reloading the environment."""

    global affiliate_config, resolver, dynamodb, table

    if config is not None:
        affiliate_config = config
        resolver = gateway.build_resolver(config)

    if resolver_override is not None:
        resolver = resolver_override

    if dynamodb_resource is not None:
        dynamodb = dynamodb_resource

    if table_name is not None:
        table = dynamodb.Table(table_name)


if __name__ == "__main__":
    asyncio.run(main())
