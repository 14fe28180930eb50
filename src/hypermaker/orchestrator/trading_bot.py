"""Trading bot that wires the feed, signals, strategy, risk and notifications."""

import asyncio
import logging
from typing import Any, Callable, Coroutine

from hypermaker.exchange.base import ExchangeClient
from hypermaker.market.feed import MarketDataFeed, MarketEvent
from hypermaker.models.market import MarketData, OrderBook, Trade
from hypermaker.models.trading import Signal
from hypermaker.notifications.telegram_notifier import TelegramNotifier
from hypermaker.orchestrator.models import BotState
from hypermaker.orchestrator.settings import OrchestratorSettings
from hypermaker.risk.models import RiskAlert
from hypermaker.risk.risk_manager import RiskManager
from hypermaker.scheduling.scheduler import Scheduler
from hypermaker.signals.signal_generator import SignalGenerator
from hypermaker.strategy.one_sided_quoting import OneSidedQuotingStrategy


logger = logging.getLogger(__name__)

STATUS_KEY = "bot:status"


class TradingBot:
    """Coordinates all trading components.

    Market events flow feed -> signal generator -> strategy. Risk alerts and
    emergency stops are forwarded to the notifier; the strategy subscribes
    to them itself. The scheduler and the feed each run as a background task.
    """

    def __init__(
        self,
        feed: MarketDataFeed,
        exchange: ExchangeClient,
        signal_generator: SignalGenerator,
        strategy: OneSidedQuotingStrategy,
        risk_manager: RiskManager,
        scheduler: Scheduler,
        settings: OrchestratorSettings,
        symbols: list[str],
        notifier: TelegramNotifier | None = None,
    ):
        self._feed = feed
        self._exchange = exchange
        self._signal_generator = signal_generator
        self._strategy = strategy
        self._risk_manager = risk_manager
        self._scheduler = scheduler
        self._settings = settings
        self._symbols = symbols
        self._notifier = notifier

        self._state = BotState.STOPPED
        self._feed_task: asyncio.Task | None = None
        self._scheduler_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._market_data_callbacks: list[Callable[[MarketData], Any]] = []

        signal_generator.add_callback(self._on_signal_callback)
        risk_manager.add_alert_callback(self._on_risk_alert)
        risk_manager.add_emergency_stop_callback(self._on_emergency_stop)
        risk_manager.add_emergency_reset_callback(self._on_emergency_reset)

    @property
    def state(self) -> BotState:
        """Return the current bot state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Return True if the bot is in RUNNING state."""
        return self._state == BotState.RUNNING

    def add_market_data_callback(self, callback: Callable[[MarketData], Any]) -> None:
        """Add a callback invoked with every MarketData snapshot."""
        self._market_data_callbacks.append(callback)

    async def start(self) -> None:
        """Connect, start the strategy and launch background tasks."""
        if self._state != BotState.STOPPED:
            raise RuntimeError("Trading bot already running")

        self._state = BotState.RUNNING
        logger.info("Starting trading bot")

        try:
            await self._exchange.connect()
            await self._feed.connect()
            await self._feed.subscribe(self._symbols)
            if self._notifier is not None:
                await self._notifier.start()
            await self._strategy.start()
        except Exception:
            logger.exception("Trading bot failed to start")
            await self._disconnect()
            self._state = BotState.STOPPED
            raise

        self._risk_manager.start_monitoring()
        if self._settings.status_interval_seconds > 0:
            self._scheduler.call_every(
                STATUS_KEY, self._settings.status_interval_seconds, self.report_status
            )

        self._scheduler_task = asyncio.create_task(self._scheduler.run())
        self._feed_task = asyncio.create_task(self._run_feed())
        logger.info("Trading bot started")

    async def stop(self) -> None:
        """Stop the bot gracefully."""
        if self._state != BotState.RUNNING:
            return

        self._state = BotState.STOPPING
        logger.info("Stopping trading bot")

        try:
            await asyncio.wait_for(
                self._strategy.stop(), timeout=self._settings.shutdown_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error("Timed out cancelling orders during shutdown")

        self._risk_manager.stop_monitoring()
        self._scheduler.cancel(STATUS_KEY)
        self._scheduler.stop()

        for task in (self._feed_task, self._scheduler_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await self._disconnect()
        self._state = BotState.STOPPED
        logger.info("Trading bot stopped")

    async def dispatch(self, event: MarketEvent) -> None:
        """Route one market event to the signal generator and strategy."""
        if isinstance(event, OrderBook):
            self._signal_generator.process_order_book(event)
            self._strategy.on_order_book(event)
        elif isinstance(event, Trade):
            self._signal_generator.process_trade(event)
        elif isinstance(event, MarketData):
            for callback in self._market_data_callbacks:
                try:
                    callback(event)
                except Exception:
                    logger.exception("Market data callback failed")
            self._signal_generator.process_market_data(event)
            await self._strategy.on_market_data(event)

    async def report_status(self) -> None:
        """Log a status line and send it to the notifier."""
        summary = self._risk_manager.get_risk_summary()
        stats = self._strategy.get_statistics()
        logger.info(
            f"Status {summary.status.value}: positions={summary.open_positions} "
            f"quotes={stats.active_orders} fills={stats.fills} "
            f"daily_pnl={summary.metrics.daily_pnl}"
        )
        if self._notifier is not None:
            await self._notifier.send_status(summary, stats)

    async def _run_feed(self) -> None:
        """Stream market events, reconnecting after errors."""
        while self._state == BotState.RUNNING:
            try:
                async for event in self._feed.stream():
                    if self._state != BotState.RUNNING:
                        return
                    await self.dispatch(event)
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Feed error: {e}")
                await asyncio.sleep(self._settings.feed_reconnect_delay_seconds)
                try:
                    await self._feed.connect()
                except Exception as reconnect_error:
                    logger.error(f"Feed reconnect failed: {reconnect_error}")

    async def _disconnect(self) -> None:
        for name, close in (
            ("feed", self._feed.disconnect),
            ("exchange", self._exchange.disconnect),
        ):
            try:
                await close()
            except Exception as e:
                logger.error(f"Error disconnecting {name}: {e}")
        if self._notifier is not None:
            await self._notifier.stop()

    def _on_signal_callback(self, signal: Signal) -> None:
        """Sync callback wrapper for the signal generator."""
        self._spawn(self._strategy.process_signal(signal))

    def _on_risk_alert(self, alert: RiskAlert) -> None:
        if self._notifier is not None:
            self._spawn(self._notifier.send_risk_alert(alert))

    def _on_emergency_stop(self, alert: RiskAlert) -> None:
        logger.critical(f"Emergency stop: {alert.message}")
        if self._notifier is not None:
            self._spawn(self._notifier.send_emergency_stop(alert))

    def _on_emergency_reset(self) -> None:
        logger.warning("Emergency stop reset, call strategy start to resume quoting")
        if self._notifier is not None:
            self._spawn(self._notifier.send_emergency_reset())

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, dropping background task")
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
