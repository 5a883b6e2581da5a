# lotledger/services/ledger/service.py
"""
Holding Metrics Service - entry point of the lot-accounting engine.

Operations:
- compute_holding_metrics(): Metrics of one asset from its full history
- replay_holding(): The pure, synchronous replay against a resolved RateTable
- compute_portfolio_metrics(): Metrics of several assets plus valued totals

Every computation runs in three phases:
1. Collect  - validate all transactions, then gather the distinct
              (date, currency) pairs whose rates are needed
2. Resolve  - fetch those rates concurrently, under one timeout, into an
              immutable RateTable (the only I/O)
3. Replay   - normalize prices, run the FIFO tracker and reduce the lots,
              entirely in memory

Design Principles:
- Dependency Injection: the rate provider is passed to the constructor
- No Transport Knowledge: raises domain exceptions only
- Composable: delegates to the normalizer, tracker and calculators
- Stateless between calls: nothing computed is cached on the service

Usage:
    from lotledger.services.ledger import HoldingMetricsService

    async with HoldingMetricsService() as service:
        metrics = await service.compute_holding_metrics(transactions, "IDR")
    metrics.cost_basis, metrics.realized_pnl, metrics.degraded
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from lotledger.config import settings
from lotledger.services.exceptions import ValidationError
from lotledger.services.ledger.calculators import CostBasisCalculator, ValuationCalculator
from lotledger.services.ledger.lot_tracker import (
    FIFOLotTracker,
    sort_chronologically,
    validate_transaction,
)
from lotledger.services.ledger.normalizer import CurrencyNormalizer
from lotledger.services.ledger.types import (
    HUNDRED,
    ZERO,
    HoldingMetrics,
    PortfolioMetrics,
    Transaction,
    TransactionKind,
    to_decimal,
)
from lotledger.services.rates.base import HistoricalRateProvider
from lotledger.services.rates.resolver import RateResolver
from lotledger.services.rates.types import RateKey, RateTable
from lotledger.utils.context import correlation_scope

logger = logging.getLogger(__name__)


def collect_rate_keys(
        transactions: Iterable[Transaction],
        target_currency: str,
) -> set[RateKey]:
    """
    Rates a replay will need.

    A transaction already priced in the target currency needs none; any
    other needs its own currency and the target currency, both on its date.
    """
    keys: set[RateKey] = set()
    for txn in transactions:
        if txn.currency != target_currency:
            keys.add((txn.date, txn.currency))
            keys.add((txn.date, target_currency))
    return keys


def _normalize_currency(currency: str | None) -> str:
    code = currency if currency is not None else settings.default_target_currency
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("Target currency is required", field="target_currency")
    return code.strip().upper()


def _check_single_asset(
        transactions: list[Transaction],
        asset_id: str | None,
) -> str | None:
    """
    Ensure a history belongs to one asset.

    Returns:
        The asset id (given, or taken from the transactions)

    Raises:
        ValidationError: If transactions name different assets
    """
    asset_ids = {txn.asset_id for txn in transactions if txn.asset_id is not None}
    if asset_id is not None:
        asset_ids.add(asset_id)

    if len(asset_ids) > 1:
        raise ValidationError(
            f"Transactions belong to several assets: {sorted(map(str, asset_ids))}",
            field="asset_id",
        )
    return next(iter(asset_ids), None)


class HoldingMetricsService:
    """
    Computes holding metrics from transaction histories.

    Attributes:
        _resolver: Builds the per-call RateTable from the injected provider
        _timeout: Default budget for one rate-resolution phase
        _cost_calc: Cost basis reduction of remaining lots
        _valuation_calc: Market valuation of a holding
    """

    def __init__(
            self,
            provider: HistoricalRateProvider | None = None,
            *,
            reference_currency: str | None = None,
            max_concurrency: int | None = None,
            timeout: float | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            provider: Historical rate source. If None, an HttpRateProvider
                      configured from settings is created and closed by
                      aclose().
            reference_currency: Currency the provider quotes rates against
            max_concurrency: Rate lookups in flight at once
            timeout: Default rate-fetch timeout in seconds
                     (defaults to settings.rate_fetch_timeout)
        """
        self._owns_provider = provider is None
        if provider is None:
            from lotledger.services.rates.http_provider import HttpRateProvider
            provider = HttpRateProvider()

        self._resolver = RateResolver(
            provider,
            reference_currency=reference_currency,
            max_concurrency=max_concurrency,
        )
        self._timeout = timeout if timeout is not None else settings.rate_fetch_timeout
        self._cost_calc = CostBasisCalculator()
        self._valuation_calc = ValuationCalculator()

    @property
    def provider(self) -> HistoricalRateProvider:
        return self._resolver.provider

    @property
    def reference_currency(self) -> str:
        return self._resolver.reference_currency

    async def aclose(self) -> None:
        """Close the rate provider if this service created it."""
        if self._owns_provider:
            await self._resolver.provider.aclose()

    async def __aenter__(self) -> "HoldingMetricsService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # =========================================================================
    # SINGLE HOLDING
    # =========================================================================

    async def compute_holding_metrics(
            self,
            transactions: Iterable[Transaction],
            target_currency: str | None = None,
            *,
            asset_id: str | None = None,
            timeout: float | None = None,
    ) -> HoldingMetrics:
        """
        Compute metrics for one asset from its complete history.

        Args:
            transactions: Every BUY/SELL of the asset, in any order
            target_currency: Currency of the results
                             (defaults to settings.default_target_currency)
            asset_id: Asset identifier, used in warnings
            timeout: Rate-fetch timeout in seconds (defaults to the service's)

        Returns:
            HoldingMetrics; degraded with RateUnavailable warnings if some
            rates fell back to 1, with Oversold warnings if SELLs exceeded
            the lots held

        Raises:
            MalformedTransactionError: If any transaction is unusable
                                       (raised before any rate lookup)
            ValidationError: If the transactions belong to several assets
        """
        target = _normalize_currency(target_currency)
        txns = list(transactions)

        with correlation_scope():
            if not txns:
                return HoldingMetrics.zero(target, asset_id)

            for txn in txns:
                validate_transaction(txn)
            asset_id = _check_single_asset(txns, asset_id)

            rate_table = await self._resolver.resolve(
                collect_rate_keys(txns, target),
                timeout=timeout if timeout is not None else self._timeout,
            )
            return self.replay_holding(txns, target, rate_table, asset_id=asset_id)

    def replay_holding(
            self,
            transactions: Iterable[Transaction],
            target_currency: str,
            rate_table: RateTable,
            *,
            asset_id: str | None = None,
    ) -> HoldingMetrics:
        """
        Replay one asset against already resolved rates.

        Pure and synchronous: the same transactions and table always give
        the same metrics.

        Raises:
            MalformedTransactionError: If any transaction is unusable
            ValidationError: If the transactions belong to several assets
        """
        target = _normalize_currency(target_currency)
        txns = list(transactions)
        if not txns:
            return HoldingMetrics.zero(target, asset_id)

        for txn in txns:
            validate_transaction(txn)
        asset_id = _check_single_asset(txns, asset_id)

        ordered = sort_chronologically(txns)
        normalizer = CurrencyNormalizer(rate_table)
        entries = [
            (txn, normalizer.normalize(txn.quantity, txn.price, txn.currency, target, txn.date))
            for txn in ordered
        ]

        replay = FIFOLotTracker(asset_id=asset_id).replay(entries)
        cost = self._cost_calc.calculate(replay.lots)

        buy_dates = [txn.date for txn in ordered if txn.kind == TransactionKind.BUY]
        first_purchase_date: date | None = min(buy_dates) if buy_dates else None

        metrics = HoldingMetrics(
            cost_basis=cost.cost_basis,
            quantity=cost.quantity,
            avg_buy_price=cost.avg_buy_price,
            realized_pnl=replay.realized_pnl,
            first_purchase_date=first_purchase_date,
            target_currency=target,
            asset_id=asset_id,
            degraded=normalizer.degraded,
            warnings=normalizer.warnings + replay.warnings,
        )

        if metrics.degraded:
            logger.warning(
                f"Metrics for {asset_id or 'asset'} in {target} are approximate: "
                f"{len(normalizer.warnings)} rate(s) defaulted to 1"
            )
        logger.debug(
            f"Replayed {len(ordered)} transaction(s) for {asset_id or 'asset'}: "
            f"quantity={metrics.quantity}, cost_basis={metrics.cost_basis}, "
            f"realized_pnl={metrics.realized_pnl}"
        )
        return metrics

    # =========================================================================
    # PORTFOLIO
    # =========================================================================

    async def compute_portfolio_metrics(
            self,
            transactions_by_asset: Mapping[str, Iterable[Transaction]],
            target_currency: str | None = None,
            current_prices: Mapping[str, Decimal | int | float | str] | None = None,
            *,
            timeout: float | None = None,
    ) -> PortfolioMetrics:
        """
        Compute metrics for several assets with one rate-resolution phase.

        Args:
            transactions_by_asset: Histories keyed by asset_id
            target_currency: Currency of every result
            current_prices: Current unit price per asset_id, already in the
                            target currency. Assets without a price are not
                            valued and are left out of the market totals.
            timeout: Rate-fetch timeout in seconds

        Returns:
            PortfolioMetrics

        Raises:
            MalformedTransactionError: If any transaction is unusable
            ValidationError: If a history contains another asset's transactions
        """
        target = _normalize_currency(target_currency)
        histories = {asset_id: list(txns) for asset_id, txns in transactions_by_asset.items()}
        prices = current_prices or {}

        with correlation_scope():
            keys: set[RateKey] = set()
            for asset_id, txns in histories.items():
                for txn in txns:
                    validate_transaction(txn)
                _check_single_asset(txns, asset_id)
                keys |= collect_rate_keys(txns, target)

            rate_table = await self._resolver.resolve(
                keys,
                timeout=timeout if timeout is not None else self._timeout,
            )

            result = PortfolioMetrics(target_currency=target)
            priced_cost_basis = ZERO

            for asset_id, txns in histories.items():
                metrics = self.replay_holding(txns, target, rate_table, asset_id=asset_id)
                result.holdings[asset_id] = metrics
                result.total_cost_basis += metrics.cost_basis
                result.total_realized_pnl += metrics.realized_pnl

                if asset_id not in prices:
                    continue

                valuation = self._valuation_calc.calculate(metrics, to_decimal(prices[asset_id]))
                result.valuations[asset_id] = valuation
                result.total_market_value = (result.total_market_value or ZERO) + valuation.market_value
                result.total_unrealized_pnl = (
                    (result.total_unrealized_pnl or ZERO) + valuation.unrealized_pnl
                )
                priced_cost_basis += metrics.cost_basis

            if result.total_unrealized_pnl is not None and priced_cost_basis > 0:
                result.total_return_pct = result.total_unrealized_pnl / priced_cost_basis * HUNDRED

            logger.info(
                f"Portfolio metrics in {target}: {len(result.holdings)} holding(s), "
                f"{len(result.valuations)} valued, degraded={result.degraded}"
            )
            return result


# =============================================================================
# MODULE-LEVEL CONVENIENCE
# =============================================================================

async def compute_holding_metrics(
        transactions: Iterable[Transaction],
        target_currency: str,
        provider: HistoricalRateProvider,
        *,
        asset_id: str | None = None,
        timeout: float | None = None,
) -> HoldingMetrics:
    """
    One-shot helper around HoldingMetricsService.compute_holding_metrics().

    Example:
        metrics = await compute_holding_metrics(transactions, "USD", provider)
    """
    service = HoldingMetricsService(provider)
    return await service.compute_holding_metrics(
        transactions,
        target_currency,
        asset_id=asset_id,
        timeout=timeout,
    )
