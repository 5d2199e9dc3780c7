"""User-facing text rendered by the chat flows."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from models.epoch_models import EpochPhase, EpochStatus, PendingEpochs
from models.market_reference import MarketReference
from models.records import LeaderboardEntry, MarketStats, Position
from models.session_models import CreateMarketSession
from services.conversation.market_commit import CommitErrorKind, CommitFailed
from services.rpc.errors import ChainError, ChainErrorKind

UNEXPECTED_ERROR = "⚠️ Something went wrong. Your current action was reset, please start again from the menu."
HANDLER_TIMEOUT = "⏳ That is taking longer than expected. Please check again in a moment."
USE_MENU = "Please use the menu below."
UNKNOWN_COMMAND = "Unknown command. Try /start, /markets, /create, /wallet, /epoch, /leaderboard, /stats or /cancel."
NO_PENDING_MARKET = "There is no market waiting for confirmation."
NOT_EXPECTING_IMAGE = "I was not expecting an image right now."
USE_BUTTONS = "Please use the buttons above."
CANCELLED = "❌ Cancelled."
NOTHING_TO_CANCEL = "Nothing to cancel."
MARKET_EXPIRED = "That market is no longer in my list. Please refresh the markets."
NO_MARKETS = "There are no active markets right now. Why not create one?"
NEED_WALLET = "You need a wallet first. Create one from the wallet menu."
MARKET_CLOSED = "⏰ Betting on this market has closed. Please pick another one."

PROMPT_QUESTION = "📝 What is the market question? (10 to 200 characters)"
PROMPT_OPTION_A = "🅰️ Enter the label for option A (1 to 50 characters)."
PROMPT_OPTION_B = "🅱️ Enter the label for option B (1 to 50 characters)."
PROMPT_END_TIME = "⏰ When does betting close? Use YYYY-MM-DD HH:MM (UTC) or DD/MM/YYYY."
PROMPT_IMAGE = "🖼 Send an image for the market, or type 'skip'."
PROMPT_TAGS = "🏷 Pick the categories that fit, then press Done."
PROMPT_WITHDRAW_ADDRESS = "📤 Send the address that should receive the funds."
PROMPT_WITHDRAW_ASSET = "Which asset do you want to withdraw?"

_COMMIT_FAILURES = {
	CommitErrorKind.WEEK_NOT_ACTIVE: "Market creation is closed: the current epoch is not active.",
	CommitErrorKind.NO_WALLET: NEED_WALLET,
	CommitErrorKind.INSUFFICIENT_FUNDS: "Insufficient funds to pay the creation fee and gas.",
	CommitErrorKind.DEADLINE_TOO_FAR: "The end time is too far in the future.",
	CommitErrorKind.DEADLINE_TOO_SOON: "The end time is too soon.",
	CommitErrorKind.DEADLINE_PAST: "The end time has already passed.",
	CommitErrorKind.TRANSACTION_REJECTED: "The transaction was rejected by the network.",
	CommitErrorKind.CONTRACT_REVERTED: "The contract rejected the market.",
	CommitErrorKind.UNKNOWN: "The market could not be created right now.",
}

_CHAIN_FAILURES = {
	ChainErrorKind.RATE_LIMITED: "The network is busy. Please try again in a moment.",
	ChainErrorKind.UNAVAILABLE: "The network is unreachable right now. Please try again later.",
	ChainErrorKind.INSUFFICIENT_FUNDS: "Insufficient funds for this transaction.",
	ChainErrorKind.TRANSACTION_REJECTED: "The transaction was rejected by the network.",
	ChainErrorKind.CONTRACT_REVERTED: "The contract rejected the transaction.",
	ChainErrorKind.WEEK_NOT_ACTIVE: "The current epoch is not active.",
}


def usdc(amount: Decimal) -> str:
	return f"{amount:.2f} USDC"


def eth(amount: Decimal) -> str:
	return f"{amount:.6f} ETH"


def format_end_time(end_time: int) -> str:
	return datetime.fromtimestamp(end_time, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def time_remaining(end_time: Optional[int], now: Optional[float] = None) -> str:
	if end_time is None:
		return "unknown"
	left = int(end_time - (time.time() if now is None else now))
	if left <= 0:
		return "ended"
	days, rest = divmod(left, 86400)
	hours, rest = divmod(rest, 3600)
	minutes = rest // 60
	if days:
		return f"{days}d {hours}h"
	if hours:
		return f"{hours}h {minutes}m"
	return f"{minutes}m"


def welcome(first_name: Optional[str]) -> str:
	name = first_name or "there"
	return (
		f"👋 Welcome, {name}!\n\n"
		"Browse prediction markets, create your own and bet with USDC on Base."
	)


def rejected(reason: str, prompt: str) -> str:
	return f"⚠️ {reason}\n\n{prompt}"


def confirmation(session: CreateMarketSession) -> str:
	lines = [
		"📋 Please confirm your market:",
		"",
		f"❓ {session.question}",
		f"🅰️ {session.option_a}",
		f"🅱️ {session.option_b}",
		f"⏰ Ends: {format_end_time(session.end_time)}",
		f"🖼 Image: {'attached' if session.image_url else 'none'}",
		f"🏷 Tags: {session.tags or 'none'}",
	]
	return "\n".join(lines)


def commit_failure(error: CommitFailed) -> str:
	text = _COMMIT_FAILURES[error.kind]
	if error.kind is CommitErrorKind.WEEK_NOT_ACTIVE:
		phase = error.phase.label if error.phase is not None else "unavailable"
		text = f"{text} (phase: {phase})"
	elif error.kind is CommitErrorKind.CONTRACT_REVERTED and error.reason:
		text = f"{text} Reason: {error.reason}"
	return f"❌ {text}\nYou can press confirm again or cancel."


def chain_failure(error: ChainError) -> str:
	text = _CHAIN_FAILURES.get(error.kind, "The transaction could not be completed right now.")
	if error.kind is ChainErrorKind.CONTRACT_REVERTED and error.reason:
		text = f"{text} Reason: {error.reason}"
	return f"❌ {text}"


def market_created(market_id: str, tx_hash: str) -> str:
	return f"🎉 Market created!\n\nMarket: {market_id}\nTransaction: {tx_hash}"


def market_list_header(count: int) -> str:
	return f"📊 Active markets ({count}):"


def market_details(reference: MarketReference, now: Optional[float] = None) -> str:
	lines = [
		f"❓ {reference.question}",
		"",
		f"🅰️ {reference.option_a}",
		f"🅱️ {reference.option_b}",
		f"⏰ Time left: {time_remaining(reference.end_time, now)}",
	]
	if reference.tags:
		lines.append(f"🏷 {reference.tags}")
	lines.append(f"🆔 {reference.market_id}")
	return "\n".join(lines)


def bet_prompt(option_label: str, balance: Decimal) -> str:
	return f"💵 How much USDC do you want to bet on '{option_label}'?\nAvailable: {usdc(balance)}"


def bet_placed(amount: Decimal, option_label: str, tx_hash: str) -> str:
	return f"✅ Bet placed: {usdc(amount)} on '{option_label}'.\nTransaction: {tx_hash}"


def wallet_created(address: str) -> str:
	return f"👛 Your wallet is ready:\n{address}\n\nDeposit USDC and a little ETH for gas on Base."


def wallet_summary(address: Optional[str]) -> str:
	if address is None:
		return "👛 You do not have a wallet yet."
	return f"👛 Wallet: {address}"


def balances(address: str, usdc_amount: Decimal, eth_amount: Decimal) -> str:
	return f"💰 Balance of {address}\n\n{usdc(usdc_amount)}\n{eth(eth_amount)}"


def deposit(address: str) -> str:
	return f"📥 Send USDC or ETH on Base to:\n{address}"


def needs_gas(minimum: Decimal) -> str:
	return f"⛽ You need at least {eth(minimum)} for gas."


def needs_funds(fee: Decimal, available: Decimal) -> str:
	return f"💸 Creating a market costs {usdc(fee)}; you have {usdc(available)}."


def withdraw_sent(asset: str, destination: str, tx_hash: str) -> str:
	return f"✅ {asset} sent to {destination}.\nTransaction: {tx_hash}"


def epoch_status(status: Optional[EpochStatus], pending: PendingEpochs) -> str:
	if status is None:
		lines = ["🗓 Epoch status is unavailable right now."]
	else:
		icon = "🟢" if status.phase is EpochPhase.ACTIVE else "🟡"
		lines = [
			f"🗓 Epoch {status.epoch_id}",
			f"{icon} Phase: {status.phase.label}",
			f"Window: {format_end_time(status.window_start)} to {format_end_time(status.window_end)}",
			f"🏆 Reward pool: {usdc(status.reward_pool)}",
		]
	if pending.epoch_ids:
		ids = ", ".join(str(epoch_id) for epoch_id in pending.epoch_ids)
		lines.append(f"⏳ Pending epochs: {ids} ({usdc(pending.total_rewards)} in rewards)")
	else:
		lines.append("⏳ Pending epochs: no information")
	return "\n".join(lines)


def positions(items: List[Position]) -> str:
	if not items:
		return "📈 You have not placed any bets yet. Browse the markets to place your first one."
	lines = [f"📈 Your latest bets ({len(items)}):"]
	for item in items:
		question = item.question or "Unknown market"
		if len(question) > 50:
			question = question[:47] + "..."
		status = "⏳ Active" if item.market_status in (None, "active") else f"🏁 {item.market_status.capitalize()}"
		lines.append(f"{question}\n{item.amount} USDC on '{item.option_label or item.side}' · {status}")
	return "\n\n".join(lines)


_MEDALS = ("🥇", "🥈", "🥉")


def leaderboard(entries: List[LeaderboardEntry]) -> str:
	if not entries:
		return "🏆 Leaderboard\n\nNo bets placed yet. Be the first!"
	lines = ["🏆 Leaderboard: top traders", ""]
	for rank, entry in enumerate(entries, start=1):
		badge = _MEDALS[rank - 1] if rank <= len(_MEDALS) else f"{rank}."
		name = f"@{entry.username}" if entry.username else f"Trader {entry.telegram_id}"
		lines.append(f"{badge} {name}: {usdc(entry.volume)} in {entry.trades} bet{'s' if entry.trades != 1 else ''}")
	return "\n".join(lines)


def market_stats(stats: MarketStats, status: Optional[EpochStatus]) -> str:
	lines = [
		"📈 Market statistics",
		"",
		f"Total markets: {stats.total_markets}",
		f"Active markets: {stats.active_markets}",
		f"Total bets: {stats.total_trades}",
		f"Total volume: {usdc(stats.total_volume)}",
		f"Average bet: {usdc(stats.average_bet)}",
		"",
	]
	if status is None:
		lines.append("🗓 Epoch status is unavailable right now.")
	else:
		lines.append(f"🗓 Epoch {status.epoch_id}: {status.phase.label}")
		lines.append(f"🏆 Reward pool: {usdc(status.reward_pool)}")
	return "\n".join(lines)
