"""Philippine Standard Geographic Code lookups for the address form."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

REGION_NAMES = {
    "01": "Region I - Ilocos Region",
    "02": "Region II - Cagayan Valley",
    "03": "Region III - Central Luzon",
    "4A": "Region IV-A - CALABARZON",
    "4B": "Region IV-B - MIMAROPA",
    "05": "Region V - Bicol Region",
    "06": "Region VI - Western Visayas",
    "07": "Region VII - Central Visayas",
    "08": "Region VIII - Eastern Visayas",
    "09": "Region IX - Zamboanga Peninsula",
    "10": "Region X - Northern Mindanao",
    "11": "Region XI - Davao Region",
    "12": "Region XII - SOCCSKSARGEN",
    "13": "Region XIII - Caraga",
    "NCR": "NCR - National Capital Region",
    "CAR": "CAR - Cordillera Administrative Region",
    "BARMM": "BARMM - Bangsamoro",
}

REGION_ORDER = [
    "NCR", "CAR", "01", "02", "03", "4A", "4B", "05", "06",
    "07", "08", "09", "10", "11", "12", "13", "BARMM",
]

_NAME_FIXES = [
    (re.compile(r"\(pob\.\)", re.IGNORECASE), "(Pob.)"),
    (re.compile(r"\bii\b", re.IGNORECASE), "II"),
    (re.compile(r"\biii\b", re.IGNORECASE), "III"),
    (re.compile(r"\biv\b", re.IGNORECASE), "IV"),
]


@dataclass
class PSGCCity:
    code: str
    name: str


@dataclass
class PSGCProvince:
    code: str
    name: str
    municipalities: list[PSGCCity] = field(default_factory=list)


@dataclass
class PSGCRegion:
    code: str
    name: str
    # NCR has no provinces; its cities hang off the region directly
    provinces: list[PSGCProvince] = field(default_factory=list)
    municipalities: list[PSGCCity] = field(default_factory=list)


def title_case(name: str) -> str:
    words = name.lower().split(" ")
    result = " ".join(word[:1].upper() + word[1:] for word in words)
    for pattern, replacement in _NAME_FIXES:
        result = pattern.sub(replacement, result)
    return result


def _region_rank(code: str) -> int:
    try:
        return REGION_ORDER.index(code)
    except ValueError:
        return len(REGION_ORDER)


def parse_psgc(data: dict) -> list[PSGCRegion]:
    """Build regions from the ph.json structure (region -> province -> municipality)."""
    regions = []
    for code, region_data in data.items():
        name = REGION_NAMES.get(code) or region_data.get("region_name", code)
        province_list = region_data.get("province_list", {})
        if code == "NCR":
            cities = [
                PSGCCity(code=f"NCR-{i}", name=title_case(city))
                for i, city in enumerate(province_list, start=1)
            ]
            regions.append(PSGCRegion(code=code, name=name, municipalities=cities))
            continue
        provinces = []
        for p, (province_name, province_data) in enumerate(province_list.items(), start=1):
            municipalities = [
                PSGCCity(code=f"{code}-{p}-{m}", name=title_case(mun))
                for m, mun in enumerate(province_data.get("municipality_list", {}), start=1)
            ]
            provinces.append(
                PSGCProvince(code=f"{code}-{p}", name=title_case(province_name), municipalities=municipalities)
            )
        regions.append(PSGCRegion(code=code, name=name, provinces=provinces))

    regions.sort(key=lambda region: _region_rank(region.code))
    return regions


def load_psgc(path: str | Path) -> list[PSGCRegion]:
    with open(path, encoding="utf-8") as fh:
        return parse_psgc(json.load(fh))


def find_region(regions: list[PSGCRegion], code_or_name: str) -> Optional[PSGCRegion]:
    for region in regions:
        if region.code == code_or_name or region.name == code_or_name:
            return region
    return None
