"""
Forest Engine: tracked species reference table.

Population estimates and trends are not served by GBIF's species search,
so live records borrow them from here when the scientific name is known.
The same table seeds the biodiversity mock generator.
"""

TRACKED_SPECIES = {
    "Pongo abelii": {
        "id": "sumatran_orangutan",
        "name": "Sumatran Orangutan",
        "status": "critically_endangered",
        "population": 14000,
        "trend_pct_per_year": -3.2,
        "habitat": "Southeast Asian Rainforest",
        "threat_level": 85,
        "conservation_status": "Critically Endangered",
    },
    "Panthera onca": {
        "id": "jaguar",
        "name": "Jaguar",
        "status": "declining",
        "population": 64000,
        "trend_pct_per_year": -1.8,
        "habitat": "Amazon Rainforest",
        "threat_level": 70,
        "conservation_status": "Near Threatened",
    },
    "Gorilla beringei": {
        "id": "mountain_gorilla",
        "name": "Mountain Gorilla",
        "status": "recovering",
        "population": 1000,
        "trend_pct_per_year": 2.1,
        "habitat": "Congo Basin",
        "threat_level": 65,
        "conservation_status": "Critically Endangered",
    },
    "Harpia harpyja": {
        "id": "harpy_eagle",
        "name": "Harpy Eagle",
        "status": "stable",
        "population": 20000,
        "trend_pct_per_year": 0.3,
        "habitat": "Amazon Rainforest",
        "threat_level": 45,
        "conservation_status": "Near Threatened",
    },
    "Ara macao": {
        "id": "scarlet_macaw",
        "name": "Scarlet Macaw",
        "status": "declining",
        "population": 50000,
        "trend_pct_per_year": -0.9,
        "habitat": "Central American Rainforest",
        "threat_level": 40,
        "conservation_status": "Least Concern",
    },
    "Loxodonta cyclotis": {
        "id": "forest_elephant",
        "name": "African Forest Elephant",
        "status": "critically_endangered",
        "population": 60000,
        "trend_pct_per_year": -4.1,
        "habitat": "Congo Basin",
        "threat_level": 92,
        "conservation_status": "Critically Endangered",
    },
    "Rangifer tarandus caribou": {
        "id": "woodland_caribou",
        "name": "Woodland Caribou",
        "status": "declining",
        "population": 2100000,
        "trend_pct_per_year": -2.5,
        "habitat": "Boreal Forest",
        "threat_level": 60,
        "conservation_status": "Vulnerable",
    },
}


def lookup_species(scientific_name: str | None) -> dict | None:
    """Reference entry for a scientific name, tolerating author suffixes ("Pongo abelii Lesson, 1827")."""
    if not scientific_name:
        return None
    name = scientific_name.strip()
    if name in TRACKED_SPECIES:
        return TRACKED_SPECIES[name]
    for known, entry in TRACKED_SPECIES.items():
        if name.lower().startswith(known.lower()):
            return entry
    return None
