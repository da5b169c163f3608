"""
Forest Engine: region definitions.

Reference forest regions used for region summaries and mock data, known
forest basins used to name detections, and centroids for the ISO codes
queried against Global Forest Watch.
"""

FOREST_REGIONS = {
    "amazon": {
        "name": "Amazon Basin",
        "lat": -3.4653, "lng": -62.2159,
        "area_km2": 6700000,
        "biodiversity_index": 94,
        "base_forest_cover": 85,
        "deforestation_rate": 2.3,
        "temperature_c": 28.5,
        "precipitation_mm": 2300,
        "fire_risk_index": 65,
        "health_score": 72,
        "alert_level": "high",
    },
    "congo": {
        "name": "Congo Basin",
        "lat": -0.228, "lng": 15.8277,
        "area_km2": 3700000,
        "biodiversity_index": 87,
        "base_forest_cover": 92,
        "deforestation_rate": 1.2,
        "temperature_c": 26.2,
        "precipitation_mm": 1800,
        "fire_risk_index": 45,
        "health_score": 81,
        "alert_level": "medium",
    },
    "boreal": {
        "name": "Boreal Forest",
        "lat": 64.2008, "lng": -153.4937,
        "area_km2": 17000000,
        "biodiversity_index": 76,
        "base_forest_cover": 94,
        "deforestation_rate": 0.3,
        "temperature_c": 13.2,
        "precipitation_mm": 400,
        "fire_risk_index": 35,
        "health_score": 89,
        "alert_level": "low",
    },
    "southeast_asia": {
        "name": "Southeast Asian Rainforest",
        "lat": 1.3521, "lng": 103.8198,
        "area_km2": 2500000,
        "biodiversity_index": 91,
        "base_forest_cover": 78,
        "deforestation_rate": 3.1,
        "temperature_c": 29.8,
        "precipitation_mm": 2500,
        "fire_risk_index": 75,
        "health_score": 65,
        "alert_level": "critical",
    },
    "temperate_north_america": {
        "name": "North American Temperate Forest",
        "lat": 45.0, "lng": -85.0,
        "area_km2": 8500000,
        "biodiversity_index": 82,
        "base_forest_cover": 88,
        "deforestation_rate": 0.8,
        "temperature_c": 15.3,
        "precipitation_mm": 900,
        "fire_risk_index": 40,
        "health_score": 85,
        "alert_level": "low",
    },
    "tropical_africa": {
        "name": "Tropical African Forest",
        "lat": 5.0, "lng": 20.0,
        "area_km2": 4000000,
        "biodiversity_index": 89,
        "base_forest_cover": 80,
        "deforestation_rate": 1.8,
        "temperature_c": 27.8,
        "precipitation_mm": 1600,
        "fire_risk_index": 55,
        "health_score": 76,
        "alert_level": "medium",
    },
}

# (name, south, north, west, east)
FOREST_BASINS = [
    ("Amazon Basin, Brazil", -5, -3, -65, -60),
    ("Congo Basin, DRC", -2, 2, 14, 17),
    ("Southeast Asian Rainforest", 0, 5, 100, 110),
]

ISO_CENTROIDS = {
    "BRA": (-3.4653, -62.2159),
    "COD": (-0.228, 15.8277),
    "IDN": (-0.7893, 113.9213),
    "PER": (-9.19, -75.0152),
    "COL": (4.5709, -74.2973),
    "BOL": (-16.2902, -63.5887),
    "CMR": (7.3697, 12.3547),
    "MYS": (4.2105, 101.9758),
}


def get_location_name(lat: float, lng: float) -> str:
    """Human name of the forest basin containing a point, or a coordinate label."""
    for name, south, north, west, east in FOREST_BASINS:
        if south < lat < north and west < lng < east:
            return name
    if lat > 60 and lng < -150:
        return "Boreal Forest, Canada"
    return f"Forest Region ({lat:.2f}, {lng:.2f})"


def get_region_centroid(region: str) -> tuple[float, float]:
    """Centroid for an ISO3 code or reference region id; (0, 0) when unknown."""
    key = (region or "").strip()
    if key.upper() in ISO_CENTROIDS:
        return ISO_CENTROIDS[key.upper()]
    ref = FOREST_REGIONS.get(key.lower())
    if ref:
        return ref["lat"], ref["lng"]
    return 0.0, 0.0
