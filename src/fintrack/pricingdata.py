"""Live price sources used to value open positions.

Every manager here returns a possibly partial mapping of symbol to
StockPrice and never raises on provider failure: a symbol the provider could
not price is simply absent from the result.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
import json
import os
import re
import sys

import litellm
import yfinance as yf  # type: ignore[import-untyped]
from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader

load_dotenv()

TEMPLATES_DIR = Path(__file__).parent / "templates"
jinja_env = Environment(loader=FileSystemLoader(TEMPLATES_DIR))

DEFAULT_PRICE_MODEL = os.getenv("FINTRACK_PRICE_MODEL", "gemini/gemini-2.5-flash")
DEFAULT_EXCHANGE_SUFFIX = os.getenv("FINTRACK_PRICE_SUFFIX", ".NS")

# When True, print status messages while fetching prices.
verbose: bool = False


@dataclass(frozen=True)
class StockPrice:
    """A current price observation for one symbol."""

    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal
    last_updated: datetime
    is_stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": str(self.price),
            "change": str(self.change),
            "change_percent": str(self.change_percent),
            "last_updated": self.last_updated.isoformat(),
            "is_stale": self.is_stale,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockPrice":
        return cls(
            symbol=str(data["symbol"]),
            price=Decimal(str(data["price"])),
            change=Decimal(str(data.get("change", "0"))),
            change_percent=Decimal(str(data.get("change_percent", "0"))),
            last_updated=datetime.fromisoformat(data["last_updated"]),
            is_stale=bool(data.get("is_stale", False)),
        )


class PricingDataManager(ABC):
    """Abstract base class for all live price providers."""

    @abstractmethod
    def fetch_prices(self, symbols: list[str]) -> dict[str, StockPrice]:
        raise NotImplementedError("This method should be overridden by subclasses.")


class FixedPricingDataManager(PricingDataManager):
    """Pricing manager that serves prices from a fixed table."""

    def __init__(self, prices: dict[str, Decimal] | None = None):
        """Initialize with a fixed price table.

        Args:
            prices: Mapping of symbol to price. Symbols not in the table are
                reported as unpriced.
        """
        self.prices = {symbol.upper(): price for symbol, price in (prices or {}).items()}

    def fetch_prices(self, symbols: list[str]) -> dict[str, StockPrice]:
        now = datetime.now(timezone.utc)
        result: dict[str, StockPrice] = {}
        for symbol in symbols:
            price = self.prices.get(symbol.upper())
            if price is None:
                continue
            result[symbol.upper()] = StockPrice(
                symbol=symbol.upper(),
                price=price,
                change=Decimal("0"),
                change_percent=Decimal("0"),
                last_updated=now,
            )
        return result


def _to_decimal(value: Any) -> Decimal:
    """Convert an optional numeric field from a provider reply, defaulting to 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def _extract_json_array(text: str) -> list[Any]:
    """Pull a JSON array of objects out of free-form model output.

    Looks for ``[ { ... } ]`` first (this also finds an array inside a
    markdown code block), then tries the whole text, then any bracketed span.
    """
    match = re.search(r"\[\s*\{[\s\S]*\}\s*\]", text)
    try:
        data = json.loads(match.group(0) if match else text)
    except json.JSONDecodeError as e:
        if verbose:
            print(f"Warning: could not parse price reply as JSON: {e}", file=sys.stderr)
        fallback = re.search(r"\[.*\]", text, re.DOTALL)
        if not fallback:
            return []
        try:
            data = json.loads(fallback.group(0))
        except json.JSONDecodeError:
            print("Warning: fallback parsing of price reply failed", file=sys.stderr)
            return []

    return data if isinstance(data, list) else []


def parse_price_response(text: str, now: datetime | None = None) -> dict[str, StockPrice]:
    """Parse a model's price reply into StockPrice objects.

    Entries without a symbol or a numeric price are ignored. Symbols are
    uppercased and a missing change defaults to zero.

    Args:
        text: The raw text returned by the model.
        now: Timestamp to stamp the quotes with. Defaults to the current UTC time.

    Returns:
        A dictionary mapping uppercased symbol to StockPrice.
    """
    now = now or datetime.now(timezone.utc)
    result: dict[str, StockPrice] = {}

    for info in _extract_json_array(text):
        if not isinstance(info, dict):
            continue
        symbol = info.get("symbol")
        price = info.get("price")
        if not symbol or isinstance(price, bool) or not isinstance(price, (int, float)):
            continue

        sym = str(symbol).upper()
        result[sym] = StockPrice(
            symbol=sym,
            price=Decimal(str(price)),
            change=_to_decimal(info.get("change")),
            change_percent=_to_decimal(info.get("changePercent")),
            last_updated=now,
        )

    return result


def get_price_prompt(symbols: list[str], exchange: str = "NSE (India)") -> str:
    """Render the price search prompt from its Jinja2 template."""
    template = jinja_env.get_template("price_prompt.j2")
    return template.render(symbols=symbols, exchange=exchange)


class LLMPricingDataManager(PricingDataManager):
    """Pricing manager that asks a search-grounded LLM for current prices.

    Replies are free text, so results can be partial or missing entirely.
    """

    def __init__(self, model: str = DEFAULT_PRICE_MODEL, exchange: str = "NSE (India)"):
        """Initialize the LLM pricing manager.

        Args:
            model: litellm model string. The provider's API key is read from
                the environment by litellm (e.g. ``GEMINI_API_KEY``).
            exchange: Exchange named in the prompt.
        """
        self.model = model
        self.exchange = exchange

    def _complete(self, prompt: str) -> str:
        response = litellm.completion(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            tools=[{"googleSearch": {}}],
        )
        return response.choices[0].message.content or ""  # type: ignore

    def fetch_prices(self, symbols: list[str]) -> dict[str, StockPrice]:
        if not symbols:
            return {}

        if verbose:
            print(f"  Searching prices for {', '.join(symbols)} …", flush=True)

        try:
            text = self._complete(get_price_prompt(symbols, self.exchange))
        except Exception as e:
            print(f"Warning: price search failed: {e}", file=sys.stderr)
            return {}

        if verbose:
            print(f"  Model reply: {text}", flush=True)

        return parse_price_response(text)


class YFinancePricingDataManager(PricingDataManager):
    """Pricing manager using the latest daily closes from Yahoo Finance."""

    def __init__(self, suffix: str = DEFAULT_EXCHANGE_SUFFIX):
        """Initialize the YFinance pricing manager.

        Args:
            suffix: Exchange suffix appended to each symbol for Yahoo
                (``.NS`` for NSE India, empty for US listings).
        """
        self.suffix = suffix

    def _get_price(self, symbol: str) -> StockPrice | None:
        ticker = yf.Ticker(f"{symbol}{self.suffix}")
        df = ticker.history(period="5d", auto_adjust=False)  # type: ignore[call-arg]
        if df.empty:
            print(f"Warning: yfinance returned no data for {symbol} (possible rate limiting)", file=sys.stderr)
            return None

        closes = df["Close"]
        last_close = Decimal(str(closes.iloc[-1])).quantize(Decimal("0.01"))
        previous_close = Decimal(str(closes.iloc[-2])).quantize(Decimal("0.01")) if len(closes) > 1 else last_close
        change = last_close - previous_close
        change_percent = (change / previous_close * 100).quantize(Decimal("0.01")) if previous_close else Decimal("0")

        return StockPrice(
            symbol=symbol,
            price=last_close,
            change=change,
            change_percent=change_percent,
            last_updated=datetime.now(timezone.utc),
        )

    def fetch_prices(self, symbols: list[str]) -> dict[str, StockPrice]:
        result: dict[str, StockPrice] = {}
        for symbol in symbols:
            if verbose:
                print(f"  Fetching {symbol}{self.suffix} …", flush=True)
            try:
                price = self._get_price(symbol.upper())
            except Exception as e:
                print(f"Warning: yfinance request failed for {symbol}: {e}", file=sys.stderr)
                continue
            if price is not None:
                result[price.symbol] = price
        return result


class CachingPricingDataManager(PricingDataManager):
    """Wraps another manager and remembers the last good quote per symbol.

    Symbols the live source misses are served from the disk cache and marked
    ``is_stale``.
    """

    def __init__(self, live: PricingDataManager, cache_path: Path | None = None):
        """Initialize the caching wrapper.

        Args:
            live: The manager used for fresh quotes.
            cache_path: JSON cache file. Defaults to ``.cache/prices.json``
                under the working directory.
        """
        self.live = live
        self.cache_path = cache_path or Path.cwd() / ".cache" / "prices.json"

    def _load_cache(self) -> dict[str, StockPrice]:
        if not self.cache_path.exists():
            return {}
        try:
            data = json.loads(self.cache_path.read_text())
            return {symbol: StockPrice.from_dict(item) for symbol, item in data.items()}
        except (json.JSONDecodeError, OSError, KeyError, ValueError, AttributeError) as e:
            # Corrupted cache, will be rewritten on the next good fetch
            print(f"Warning: ignoring unreadable price cache {self.cache_path}: {e}", file=sys.stderr)
            return {}

    def _save_cache(self, cache: dict[str, StockPrice]) -> None:
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        data = {symbol: price.to_dict() for symbol, price in sorted(cache.items())}
        self.cache_path.write_text(json.dumps(data, indent=2))

    def fetch_prices(self, symbols: list[str]) -> dict[str, StockPrice]:
        live_prices = self.live.fetch_prices(symbols)
        cache = self._load_cache()

        if live_prices:
            cache.update({symbol: replace(price, is_stale=False) for symbol, price in live_prices.items()})
            self._save_cache(cache)

        result = dict(live_prices)
        for symbol in symbols:
            sym = symbol.upper()
            if sym not in result and sym in cache:
                result[sym] = replace(cache[sym], is_stale=True)

        return result


PRICE_SOURCES = ("none", "llm", "yfinance")


def get_pricing_manager(source: str, use_cache: bool = True) -> PricingDataManager | None:
    """Build the pricing manager for a named price source.

    Args:
        source: One of ``PRICE_SOURCES``. ``"none"`` disables live prices.
        use_cache: Wrap the live source so missed symbols fall back to the
            last known quote.

    Returns:
        The pricing manager, or None when live prices are disabled.

    Raises:
        ValueError: If the source name is unknown.
    """
    if source == "none":
        return None
    if source == "llm":
        manager: PricingDataManager = LLMPricingDataManager()
    elif source == "yfinance":
        manager = YFinancePricingDataManager()
    else:
        raise ValueError(f"Unknown price source '{source}' (expected one of {', '.join(PRICE_SOURCES)})")

    return CachingPricingDataManager(manager) if use_cache else manager
