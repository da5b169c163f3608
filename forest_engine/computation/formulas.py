"""
Forest Engine: deterministic severity and index rules.

Shared by every adapter and mock generator so that severity and alert
levels are always computed, never passed through from upstream.

Fire severity:       frp>50 & conf>80 critical, frp>25 & conf>70 high,
                     frp>10 & conf>60 medium, else low
Deforestation:       alert count >100 critical, >50 high, >10 medium, else low
Fire weather index:  min(100, (max(0,100-humidity) + max(0,temp-20)
                     + max(0,30-precipitation)) / 3)
"""

import logging

from ..models import Severity, SpeciesStatus

logger = logging.getLogger(__name__)

# FIRMS VIIRS products report confidence as a class letter
FIRMS_CONFIDENCE_CLASSES = {"l": 30.0, "n": 60.0, "h": 90.0}

THREAT_LEVEL_BY_STATUS = {
    SpeciesStatus.CRITICALLY_ENDANGERED: 90.0,
    SpeciesStatus.DECLINING: 65.0,
    SpeciesStatus.RECOVERING: 50.0,
    SpeciesStatus.STABLE: 25.0,
}


def calculate_fire_severity(frp: float, confidence: float) -> Severity:
    """Severity of a fire detection from radiative power (MW) and confidence (0-100)."""
    if frp > 50 and confidence > 80:
        return Severity.CRITICAL
    if frp > 25 and confidence > 70:
        return Severity.HIGH
    if frp > 10 and confidence > 60:
        return Severity.MEDIUM
    return Severity.LOW


def calculate_deforestation_severity(alert_count: float) -> Severity:
    """Severity of a GLAD deforestation alert cluster from its alert count (or area)."""
    if alert_count > 100:
        return Severity.CRITICAL
    if alert_count > 50:
        return Severity.HIGH
    if alert_count > 10:
        return Severity.MEDIUM
    return Severity.LOW


def calculate_fire_weather_index(temp: float, humidity: float, precipitation: float) -> float:
    """
    Bounded composite of dryness, heat and rainfall deficit.

    Example: temp=30, humidity=20, precipitation=0 -> (80 + 10 + 30) / 3 = 40.0
    """
    dryness = max(0.0, 100.0 - humidity)
    heat = max(0.0, temp - 20.0)
    dry_period = max(0.0, 30.0 - precipitation)
    return min(100.0, (dryness + heat + dry_period) / 3.0)


def calculate_region_alert_level(fire_weather_index: float, deforestation_rate: float) -> Severity:
    """
    Region alert level from a risk score.

    Fire weather adds 3/2/1 above 80/60/40, annual forest loss (%) adds
    3/2/1 above 3/2/1. Score >=5 critical, >=3 high, >=1 medium.
    """
    risk_score = 0
    if fire_weather_index > 80:
        risk_score += 3
    elif fire_weather_index > 60:
        risk_score += 2
    elif fire_weather_index > 40:
        risk_score += 1

    if deforestation_rate > 3:
        risk_score += 3
    elif deforestation_rate > 2:
        risk_score += 2
    elif deforestation_rate > 1:
        risk_score += 1

    if risk_score >= 5:
        return Severity.CRITICAL
    if risk_score >= 3:
        return Severity.HIGH
    if risk_score >= 1:
        return Severity.MEDIUM
    return Severity.LOW


def calculate_health_score(fire_weather_index: float, annual_precipitation: float,
                           temperature: float, deforestation_rate: float) -> float:
    """Region health score, floor 30 and ceiling 100."""
    score = 80.0
    if fire_weather_index > 70:
        score -= 15
    if annual_precipitation < 500:
        score -= 10
    if temperature > 35:
        score -= 5
    score -= deforestation_rate * 2
    return round(max(30.0, min(100.0, score)), 1)


def calculate_forest_cover(base_cover: float, deforestation_rate: float) -> float:
    """Forest cover (%) after recent loss, never below 30."""
    return max(30.0, base_cover - deforestation_rate)


def determine_conservation_status(threat_status: str | None) -> SpeciesStatus:
    """Map a free-text threat status (IUCN wording) onto the four tracked statuses."""
    status = (threat_status or "").lower()
    if "critically endangered" in status:
        return SpeciesStatus.CRITICALLY_ENDANGERED
    if "endangered" in status or "vulnerable" in status:
        return SpeciesStatus.DECLINING
    if "recovering" in status or "improving" in status:
        return SpeciesStatus.RECOVERING
    return SpeciesStatus.STABLE


def threat_level_for(status: SpeciesStatus) -> float:
    return THREAT_LEVEL_BY_STATUS[status]


def parse_confidence(raw) -> float:
    """
    Confidence from an upstream value: numbers pass through, FIRMS class
    letters (l/n/h or low/nominal/high) map to 30/60/90, anything else is 0.
    """
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    text = str(raw).strip().lower()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        pass
    value = FIRMS_CONFIDENCE_CLASSES.get(text[0])
    if value is None:
        logger.debug(f"Unrecognised confidence value: {raw!r}")
        return 0.0
    return value
