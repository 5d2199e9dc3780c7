"""Button payloads and inline keyboards used by the chat flows."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

from models.chat_events import Button, Keyboard

MARKET_CATEGORIES = (
	"AI",
	"Art",
	"Automotive",
	"Bitcoin",
	"Business",
	"Crypto",
	"E-sports",
	"Economy",
	"Entertainment",
	"Environment",
	"Fashion",
	"Finance",
	"Food",
	"Forecasting",
	"Gaming",
	"Health",
	"Lifestyle",
	"Music",
	"Politics",
	"Science",
	"Sports",
	"Technology",
)

MAIN_MENU = "menu:main"
BROWSE_MARKETS = "markets:browse"
MARKET_PREFIX = "market:"
BET_PREFIX = "bet:"
CREATE_START = "create:start"
CREATE_CONFIRM = "create:confirm"
CANCEL = "session:cancel"
TAG_PREFIX = "tag:"
TAGS_DONE = "tags:done"
WALLET_MENU = "wallet:menu"
WALLET_CREATE = "wallet:create"
WALLET_BALANCE = "wallet:balance"
WALLET_DEPOSIT = "wallet:deposit"
WALLET_WITHDRAW = "wallet:withdraw"
WALLET_POSITIONS = "wallet:positions"
WITHDRAW_USDC = "withdraw:usdc"
WITHDRAW_ETH = "withdraw:eth"
EPOCH_STATUS = "epoch:status"
LEADERBOARD = "stats:leaderboard"
MARKET_STATS = "stats:markets"

TAG_COLUMNS = 2
LABEL_LIMIT = 40


def _rows(buttons: Sequence[Button], width: int) -> Keyboard:
	return [list(buttons[i:i + width]) for i in range(0, len(buttons), width)]


def _shorten(text: str, limit: int = LABEL_LIMIT) -> str:
	return text if len(text) <= limit else text[: limit - 3] + "..."


def main_menu() -> Keyboard:
	return [
		[Button("📊 Browse markets", BROWSE_MARKETS)],
		[Button("➕ Create market", CREATE_START)],
		[Button("👛 Wallet", WALLET_MENU), Button("🗓 Epoch status", EPOCH_STATUS)],
		[Button("🏆 Leaderboard", LEADERBOARD), Button("📈 Market stats", MARKET_STATS)],
	]


def back_to_menu() -> Keyboard:
	return [[Button("⬅️ Main menu", MAIN_MENU)]]


def cancel_only() -> Keyboard:
	return [[Button("❌ Cancel", CANCEL)]]


def wallet_menu(has_wallet: bool) -> Keyboard:
	if not has_wallet:
		return [[Button("🆕 Create wallet", WALLET_CREATE)], [Button("⬅️ Main menu", MAIN_MENU)]]
	return [
		[Button("💰 Balance", WALLET_BALANCE), Button("📥 Deposit", WALLET_DEPOSIT)],
		[Button("📤 Withdraw", WALLET_WITHDRAW), Button("📈 My bets", WALLET_POSITIONS)],
		[Button("⬅️ Main menu", MAIN_MENU)],
	]


def tag_grid(selected: Iterable[str]) -> Keyboard:
	"""Category grid; selected categories carry a check mark."""
	chosen = set(selected)
	buttons = [
		Button(f"✅ {tag}" if tag in chosen else tag, f"{TAG_PREFIX}{tag}")
		for tag in MARKET_CATEGORIES
	]
	keyboard = _rows(buttons, TAG_COLUMNS)
	keyboard.append([Button("✔️ Done", TAGS_DONE)])
	keyboard.append([Button("❌ Cancel", CANCEL)])
	return keyboard


def confirm_market() -> Keyboard:
	return [[Button("✅ Create market", CREATE_CONFIRM), Button("❌ Cancel", CANCEL)]]


def market_list(entries: Sequence[Tuple[str, str]]) -> Keyboard:
	"""One button per (token, question) pair."""
	keyboard = [[Button(_shorten(question), f"{MARKET_PREFIX}{token}")] for token, question in entries]
	keyboard.append([Button("🔄 Refresh", BROWSE_MARKETS), Button("⬅️ Main menu", MAIN_MENU)])
	return keyboard


def market_actions(token: str, option_a: str, option_b: str) -> Keyboard:
	return [
		[
			Button(f"🅰️ {_shorten(option_a, 20)}", f"{BET_PREFIX}{token}:A"),
			Button(f"🅱️ {_shorten(option_b, 20)}", f"{BET_PREFIX}{token}:B"),
		],
		[Button("⬅️ Back to markets", BROWSE_MARKETS)],
	]


def withdraw_assets() -> Keyboard:
	return [
		[Button("USDC", WITHDRAW_USDC), Button("ETH", WITHDRAW_ETH)],
		[Button("❌ Cancel", CANCEL)],
	]


def refresh_markets() -> Keyboard:
	return [[Button("🔄 Refresh markets", BROWSE_MARKETS)]]


def leaderboard_actions() -> Keyboard:
	return [
		[Button("🔄 Refresh", LEADERBOARD), Button("📈 My bets", WALLET_POSITIONS)],
		[Button("⬅️ Main menu", MAIN_MENU)],
	]


def stats_actions() -> Keyboard:
	return [
		[Button("🔄 Refresh", MARKET_STATS), Button("🗓 Epoch status", EPOCH_STATUS)],
		[Button("📊 Browse markets", BROWSE_MARKETS)],
		[Button("⬅️ Main menu", MAIN_MENU)],
	]
