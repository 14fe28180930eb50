# main.py
"""Main entry point for the hypermaker market-making bot."""
import asyncio
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

from hypermaker.config.settings import LoggingConfig, Settings
from hypermaker.exchange import PaperExchangeClient
from hypermaker.market import SimulatedMarketFeed
from hypermaker.notifications import AlertFormatter, TelegramNotifier
from hypermaker.orchestrator import TradingBot
from hypermaker.risk import RiskManager
from hypermaker.scheduling import Scheduler
from hypermaker.signals import SignalGenerator
from hypermaker.strategy import OneSidedQuotingStrategy


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

CONFIG_PATH = Path("config/settings.yaml")


def configure_logging(config: LoggingConfig) -> None:
    """Apply log level and attach the rotating audit-log handler.

    Args:
        config: Logging section of the settings.
    """
    root = logging.getLogger()
    root.setLevel(config.level.upper())
    formatter = logging.Formatter(config.format, datefmt=config.date_format)
    for handler in root.handlers:
        handler.setFormatter(formatter)

    audit_path = Path(config.audit_log_path)
    audit_path.parent.mkdir(parents=True, exist_ok=True)

    audit_logger = logging.getLogger("hypermaker.audit")
    for handler in list(audit_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            audit_logger.removeHandler(handler)
            handler.close()

    audit_handler = RotatingFileHandler(
        audit_path,
        maxBytes=config.audit_max_bytes,
        backupCount=config.audit_backup_count,
    )
    audit_handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
    audit_logger.addHandler(audit_handler)
    audit_logger.setLevel(logging.INFO)
    logger.info(f"✓ Audit log at {audit_path}")


def print_startup_banner(settings: Settings) -> None:
    """Print system startup banner."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.system.name}")
    logger.info(f"Mode: {settings.system.mode}")
    logger.info(f"Version: {settings.system.version}")
    logger.info(f"Symbols: {', '.join(settings.quoting.symbols)}")
    logger.info("=" * 60)


def load_and_validate_config(config_path: Path = CONFIG_PATH) -> Settings:
    """Load and validate configuration.

    Returns:
        Settings object loaded from YAML.

    Raises:
        SystemExit: If config file missing or YAML parsing/validation fails.
    """
    load_dotenv()
    logger.info("✓ Loaded environment variables")

    if not config_path.exists():
        logger.error(f"{config_path} not found")
        sys.exit(1)

    try:
        settings = Settings.from_yaml(config_path)
        logger.info(f"✓ Settings loaded from {config_path}")
    except Exception as e:
        logger.error(f"Failed to parse {config_path}: {e}")
        sys.exit(1)

    return settings


def build_bot(settings: Settings) -> TradingBot:
    """Construct every component and wire them into a TradingBot.

    Args:
        settings: Loaded settings object.

    Returns:
        TradingBot ready to start.
    """
    scheduler = Scheduler(resolution=settings.orchestrator.scheduler_resolution_seconds)
    logger.info("✓ Scheduler initialized")

    risk_manager = RiskManager(settings=settings.risk_settings, scheduler=scheduler)
    logger.info("✓ RiskManager initialized")

    exchange = PaperExchangeClient(settings=settings.paper_exchange)
    logger.info("✓ PaperExchangeClient initialized")

    feed = SimulatedMarketFeed(settings=settings.market_feed)
    logger.info("✓ SimulatedMarketFeed initialized")

    signal_generator = SignalGenerator(settings=settings.signals)
    logger.info("✓ SignalGenerator initialized")

    strategy = OneSidedQuotingStrategy(
        settings=settings.quoting,
        exchange=exchange,
        risk_manager=risk_manager,
        scheduler=scheduler,
    )
    logger.info("✓ OneSidedQuotingStrategy initialized")

    notifier = TelegramNotifier(settings=settings.notifications, formatter=AlertFormatter())
    logger.info(
        f"✓ TelegramNotifier initialized (enabled: {notifier.is_enabled})"
    )

    bot = TradingBot(
        feed=feed,
        exchange=exchange,
        signal_generator=signal_generator,
        strategy=strategy,
        risk_manager=risk_manager,
        scheduler=scheduler,
        settings=settings.orchestrator,
        symbols=settings.quoting.symbols,
        notifier=notifier,
    )
    bot.add_market_data_callback(exchange.update_market)
    logger.info("✓ TradingBot initialized")

    return bot


async def run(settings: Settings) -> None:
    """Run the bot until SIGINT/SIGTERM."""
    bot = build_bot(settings)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.warning(f"Signal handler for {sig.name} not supported on this platform")

    await bot.start()
    logger.info("✓ System running (Ctrl+C to stop)")

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutdown requested")
        await bot.stop()


def main() -> None:
    settings = load_and_validate_config()
    configure_logging(settings.logging)
    print_startup_banner(settings)

    try:
        asyncio.run(run(settings))
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
