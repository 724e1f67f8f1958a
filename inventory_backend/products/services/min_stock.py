# products/services/min_stock.py

"""
MINIMUM STOCK RECOMMENDER

Purpose:
- Recommend a per-product minimum stock level (low-stock threshold) from sales
  history, and optionally apply it to the StockLedger.

Daily demand:
- Sale items in the lookback window are grouped by local sale date.
- days_analyzed = number of days WITH sales.
- average = total units / days_analyzed; peak = max day; std = sample std.

Estimates (each rounded half-up to an integer):
- velocity    = avg x lead_time x safety_multiplier
- statistical = avg x lead_time + z x std x sqrt(lead_time)
- seasonal    = statistical x (recent_rate / full_rate), where the rates are
                units per calendar day over the recent window and the whole
                lookback window. Only when enabled and the history reaches back
                past the recent window; otherwise None.
- hybrid      = weighted blend of the estimates that are > 0
                (velocity 0.3, statistical 0.3, seasonal 0.4, renormalized),
                floored at min_threshold.

Trend: first half vs second half of the (date-sorted) sales days.
Fewer than 7 days of sales is always "stable".
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

import numpy as np
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from products.models import Product, StockLedger

from . import stock_ledger

logger = logging.getLogger(__name__)

HYBRID_WEIGHTS = {
    "velocity": 0.3,
    "statistical": 0.3,
    "seasonal": 0.4,
}

MIN_TREND_DAYS = 7


class MinStockError(Exception):
    pass


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ============================================================
# CONFIG
# ============================================================

_CAMEL_KEYS = {
    "lookbackDays": "lookback_days",
    "leadTimeDays": "lead_time_days",
    "safetyStockMultiplier": "safety_stock_multiplier",
    "minThreshold": "min_threshold",
    "seasonalAdjustment": "seasonal_adjustment",
    "serviceLevelZ": "service_level_z",
    "trendThresholdPercent": "trend_threshold_percent",
    "recentWindowDays": "recent_window_days",
}


@dataclass(frozen=True)
class MinStockConfig:
    lookback_days: int = 90
    lead_time_days: int = 7
    safety_stock_multiplier: float = 1.5
    min_threshold: int = 10
    seasonal_adjustment: bool = True
    service_level_z: float = 1.65
    trend_threshold_percent: float = 15.0
    recent_window_days: int = 30

    @classmethod
    def from_settings(cls, overrides: dict | None = None) -> "MinStockConfig":
        """
        Defaults from settings.MIN_STOCK, then per-request overrides.
        Override keys may be snake_case or camelCase (lookbackDays, ...).
        """
        conf = getattr(settings, "MIN_STOCK", {}) or {}
        base = {}
        for f in fields(cls):
            key = f.name.upper()
            if key in conf:
                base[f.name] = conf[key]

        for key, value in (overrides or {}).items():
            if value is None:
                continue
            name = _CAMEL_KEYS.get(key, key)
            if name not in {f.name for f in fields(cls)}:
                raise MinStockError(f"Unknown config key '{key}'")
            base[name] = value

        return cls(**base).validated()

    def validated(self) -> "MinStockConfig":
        try:
            config = replace(
                self,
                lookback_days=int(self.lookback_days),
                lead_time_days=int(self.lead_time_days),
                safety_stock_multiplier=float(self.safety_stock_multiplier),
                min_threshold=int(self.min_threshold),
                seasonal_adjustment=bool(self.seasonal_adjustment),
                service_level_z=float(self.service_level_z),
                trend_threshold_percent=float(self.trend_threshold_percent),
                recent_window_days=int(self.recent_window_days),
            )
        except (TypeError, ValueError) as exc:
            raise MinStockError(f"Invalid min-stock config: {exc}") from exc

        if config.lookback_days < 1:
            raise MinStockError("lookback_days must be >= 1")
        if config.lead_time_days < 1:
            raise MinStockError("lead_time_days must be >= 1")
        if config.safety_stock_multiplier < 0:
            raise MinStockError("safety_stock_multiplier cannot be negative")
        if config.min_threshold < 0:
            raise MinStockError("min_threshold cannot be negative")
        if config.recent_window_days < 1:
            raise MinStockError("recent_window_days must be >= 1")
        return config


# ============================================================
# RESULT TYPES
# ============================================================


@dataclass(frozen=True)
class SalesMetrics:
    total_sales: int
    days_analyzed: int
    average_daily_sales: float
    peak_daily_sales: int = 0
    std_deviation: float = 0.0
    trend: str = "stable"


@dataclass(frozen=True)
class Calculations:
    velocity: int
    statistical: int
    seasonal: int | None
    hybrid: int


@dataclass(frozen=True)
class MinStockRecommendation:
    product_id: str
    min_stock_level: int
    method: str
    metrics: SalesMetrics
    calculations: Calculations | None = None
    message: str = ""

    def as_dict(self) -> dict:
        data = {
            "success": True,
            "product_id": self.product_id,
            "min_stock_level": self.min_stock_level,
            "method": self.method,
            "metrics": asdict(self.metrics),
        }
        if self.calculations is not None:
            data["calculations"] = asdict(self.calculations)
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class ProductRecommendationResult:
    product_id: str
    product_name: str
    success: bool
    old_min_stock: int = 0
    new_min_stock: int | None = None
    change: int | None = None
    change_percent: float | None = None
    metrics: dict | None = None
    calculations: dict | None = None
    error: str = ""

    def as_dict(self) -> dict:
        data = asdict(self)
        if not self.error:
            data.pop("error")
        return data


@dataclass
class BatchRecommendationResult:
    total_count: int = 0
    results: list[ProductRecommendationResult] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    def as_dict(self) -> dict:
        return {
            "success": True,
            "updated_count": self.updated_count,
            "total_count": self.total_count,
            "results": [r.as_dict() for r in self.results],
        }


# ============================================================
# METRICS
# ============================================================


def daily_sales(rows) -> dict:
    """(quantity, created_at) rows -> {local date: units}."""
    days = defaultdict(int)
    for quantity, created_at in rows:
        days[timezone.localdate(created_at)] += int(quantity or 0)
    return dict(days)


def classify_trend(days: dict, threshold_percent: float = 15.0) -> str:
    if len(days) < MIN_TREND_DAYS:
        return "stable"

    demands = np.array([days[d] for d in sorted(days)], dtype=float)
    midpoint = len(demands) // 2
    first_avg = float(demands[:midpoint].mean())
    second_avg = float(demands[midpoint:].mean())

    if first_avg == 0:
        return "increasing" if second_avg > 0 else "stable"

    percent_change = (second_avg - first_avg) / first_avg * 100
    if percent_change > threshold_percent:
        return "increasing"
    if percent_change < -threshold_percent:
        return "decreasing"
    return "stable"


def compute_metrics(days: dict, *, trend_threshold_percent: float = 15.0) -> SalesMetrics:
    if not days:
        return SalesMetrics(total_sales=0, days_analyzed=0, average_daily_sales=0.0)

    demands = np.array(list(days.values()), dtype=float)
    total = int(demands.sum())
    std = float(demands.std(ddof=1)) if len(demands) > 1 else 0.0

    return SalesMetrics(
        total_sales=total,
        days_analyzed=len(demands),
        average_daily_sales=round(float(demands.mean()), 4),
        peak_daily_sales=int(demands.max()),
        std_deviation=round(std, 4),
        trend=classify_trend(days, trend_threshold_percent),
    )


# ============================================================
# ESTIMATES
# ============================================================


def velocity_estimate(avg: float, config: MinStockConfig) -> int:
    return _round_half_up(avg * config.lead_time_days * config.safety_stock_multiplier)


def _statistical_raw(avg: float, std: float, config: MinStockConfig) -> float:
    lead = config.lead_time_days
    return avg * lead + config.service_level_z * std * math.sqrt(lead)


def statistical_estimate(avg: float, std: float, config: MinStockConfig) -> int:
    return _round_half_up(_statistical_raw(avg, std, config))


def seasonal_estimate(days: dict, avg: float, std: float, config: MinStockConfig, *, today) -> int | None:
    if not config.seasonal_adjustment or not days:
        return None

    recent_start = today - timedelta(days=config.recent_window_days)
    if min(days) >= recent_start:
        # not enough history to compare a recent window against
        return None

    total = sum(days.values())
    full_rate = total / config.lookback_days
    if full_rate <= 0:
        return None

    recent_units = sum(units for day, units in days.items() if day > recent_start)
    recent_rate = recent_units / config.recent_window_days

    return _round_half_up(_statistical_raw(avg, std, config) * recent_rate / full_rate)


def hybrid_estimate(velocity: int, statistical: int, seasonal: int | None, min_threshold: int) -> int:
    candidates = {"velocity": velocity, "statistical": statistical, "seasonal": seasonal}
    available = {k: v for k, v in candidates.items() if v is not None and v > 0}
    if not available:
        return min_threshold

    weight_sum = sum(HYBRID_WEIGHTS[k] for k in available)
    blended = sum(HYBRID_WEIGHTS[k] * v for k, v in available.items()) / weight_sum
    return max(_round_half_up(blended), min_threshold)


# ============================================================
# ENTRY POINTS
# ============================================================


def _sales_rows(product_id, since):
    # Local import: sales.models depends on products.models.
    from sales.models import SaleItem

    return SaleItem.objects.filter(
        product_id=product_id,
        sale__created_at__gte=since,
    ).values_list("quantity", "sale__created_at")


def recommend(product_id, config: MinStockConfig | None = None, *, now=None) -> MinStockRecommendation:
    config = config or MinStockConfig.from_settings()
    now = now or timezone.now()

    if not Product.objects.filter(pk=product_id).exists():
        raise MinStockError(f"Product not found: {product_id}")

    since = now - timedelta(days=config.lookback_days)
    days = daily_sales(_sales_rows(product_id, since))

    if not days:
        return MinStockRecommendation(
            product_id=str(product_id),
            min_stock_level=config.min_threshold,
            method="default",
            metrics=SalesMetrics(
                total_sales=0,
                days_analyzed=config.lookback_days,
                average_daily_sales=0.0,
            ),
            calculations=Calculations(
                velocity=0,
                statistical=0,
                seasonal=None,
                hybrid=config.min_threshold,
            ),
            message="No sales history found, using minimum threshold",
        )

    metrics = compute_metrics(days, trend_threshold_percent=config.trend_threshold_percent)
    avg = metrics.average_daily_sales
    std = metrics.std_deviation

    velocity = velocity_estimate(avg, config)
    statistical = statistical_estimate(avg, std, config)
    seasonal = seasonal_estimate(days, avg, std, config, today=timezone.localdate(now))
    hybrid = hybrid_estimate(velocity, statistical, seasonal, config.min_threshold)

    return MinStockRecommendation(
        product_id=str(product_id),
        min_stock_level=max(hybrid, config.min_threshold),
        method="hybrid",
        metrics=metrics,
        calculations=Calculations(
            velocity=velocity,
            statistical=statistical,
            seasonal=seasonal,
            hybrid=hybrid,
        ),
    )


def _change_percent(old: int, new: int) -> float:
    if old == 0:
        return 100.0 if new else 0.0
    return round((new - old) / old * 100, 2)


def recommend_all(config: MinStockConfig | None = None, *, auto_apply: bool = True, now=None) -> BatchRecommendationResult:
    """
    Recommend for every active product. A failure for one product is recorded
    in its result entry and does not stop the run.
    """
    config = config or MinStockConfig.from_settings()
    products = list(Product.objects.filter(is_active=True).order_by("name"))
    thresholds = dict(
        StockLedger.objects.filter(product__in=products).values_list("product_id", "threshold_quantity")
    )

    batch = BatchRecommendationResult(total_count=len(products))

    for product in products:
        old = int(thresholds.get(product.id, 0) or 0)
        try:
            rec = recommend(product.id, config, now=now)
            if auto_apply:
                stock_ledger.set_thresholds(product.id, threshold_quantity=rec.min_stock_level)
        except (DatabaseError, MinStockError, ArithmeticError, ValueError) as exc:
            logger.warning(
                "Min stock recommendation failed",
                extra={"product_id": str(product.id), "error": str(exc)},
            )
            batch.results.append(
                ProductRecommendationResult(
                    product_id=str(product.id),
                    product_name=product.name,
                    success=False,
                    old_min_stock=old,
                    error=str(exc),
                )
            )
            continue

        new = rec.min_stock_level
        batch.results.append(
            ProductRecommendationResult(
                product_id=str(product.id),
                product_name=product.name,
                success=True,
                old_min_stock=old,
                new_min_stock=new,
                change=new - old,
                change_percent=_change_percent(old, new),
                metrics=asdict(rec.metrics),
                calculations=asdict(rec.calculations) if rec.calculations else None,
            )
        )

    logger.info(
        "Min stock recommendation run finished",
        extra={"updated": batch.updated_count, "total": batch.total_count, "auto_apply": auto_apply},
    )
    return batch
