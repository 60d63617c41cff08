"""
Material Library Management
===========================
Defines the configuration records for materials.
These classes hold the PARAMETERS needed to build the solver's Material objects.
"""
from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from plasmafurnace.controller.fea.pre.material import (
    Material,
    PropertyCurve,
    PropertyName,
    TabulatedProperty,
)
from plasmafurnace.errors import ConfigurationError, ValidationIssue

logger = logging.getLogger(__name__)

# A property is either a constant or a {"kind": ...} record (see PropertyCurve.from_dict)
PropertySpec = Union[float, Dict[str, Any]]


def _property_curve(name: PropertyName, spec: PropertySpec) -> PropertyCurve:
    try:
        return PropertyCurve.from_dict(spec)
    except ConfigurationError as e:
        # Prefix issues with the property they belong to
        raise ConfigurationError.from_issues([
            ValidationIssue(
                str(name) if issue.parameter == "property" else f"{name}.{issue.parameter}",
                issue.value,
                issue.expected,
            )
            for issue in e.issues
        ]) from None


@dataclass(kw_only=True)
class MaterialRecord:
    """Serializable description of a material."""
    name: str
    description: str = ""
    density: PropertySpec
    specific_heat: PropertySpec
    thermal_conductivity: PropertySpec
    emissivity: float = 0.8
    melting_point: Optional[float] = None
    latent_heat_fusion: Optional[float] = None
    vaporization_point: Optional[float] = None
    latent_heat_vaporization: Optional[float] = None

    def to_material(self) -> Material:
        """Build the solver-side material. Raises ConfigurationError on bad data."""
        return Material(
            name=self.name,
            description=self.description,
            density=_property_curve(PropertyName.DENSITY, self.density),
            specific_heat=_property_curve(PropertyName.SPECIFIC_HEAT, self.specific_heat),
            thermal_conductivity=_property_curve(PropertyName.THERMAL_CONDUCTIVITY, self.thermal_conductivity),
            emissivity=self.emissivity,
            melting_point=self.melting_point,
            latent_heat_fusion=self.latent_heat_fusion,
            vaporization_point=self.vaporization_point,
            latent_heat_vaporization=self.latent_heat_vaporization,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            PropertyName.DENSITY.value: self.density,
            PropertyName.SPECIFIC_HEAT.value: self.specific_heat,
            PropertyName.THERMAL_CONDUCTIVITY.value: self.thermal_conductivity,
            "emissivity": self.emissivity,
            "melting_point": self.melting_point,
            "latent_heat_fusion": self.latent_heat_fusion,
            "vaporization_point": self.vaporization_point,
            "latent_heat_vaporization": self.latent_heat_vaporization,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> MaterialRecord:
        missing = [
            key for key in (
                "name",
                PropertyName.DENSITY.value,
                PropertyName.SPECIFIC_HEAT.value,
                PropertyName.THERMAL_CONDUCTIVITY.value,
            )
            if key not in data
        ]
        if missing:
            raise ConfigurationError("material", sorted(data), f"the keys {missing}")
        return MaterialRecord(
            name=data["name"],
            description=data.get("description", ""),
            density=data[PropertyName.DENSITY.value],
            specific_heat=data[PropertyName.SPECIFIC_HEAT.value],
            thermal_conductivity=data[PropertyName.THERMAL_CONDUCTIVITY.value],
            emissivity=data.get("emissivity", 0.8),
            melting_point=data.get("melting_point"),
            latent_heat_fusion=data.get("latent_heat_fusion"),
            vaporization_point=data.get("vaporization_point"),
            latent_heat_vaporization=data.get("latent_heat_vaporization"),
        )

    @classmethod
    def from_csv(cls, name: str, filepath: str, **phase_data: Any) -> MaterialRecord:
        """
        Import tabulated properties from a CSV file.

        Each data row holds ``T [K]; k [W/(m·K)]; cp [J/(kg·K)]; rho [kg/m³]``.
        Rows that do not start with a number (headers, comments) are skipped;
        both ';' and ',' delimiters and decimal commas are accepted.

        Args:
            name: Material name.
            filepath: Path to the CSV file.
            **phase_data: Optional emissivity and phase-change fields.
        """
        t_list, k_list, c_list, r_list = [], [], [], []

        try:
            with open(filepath, mode='r', encoding='utf-8-sig') as f:
                line = f.readline()
                delimiter = ';' if ';' in line else ','
                f.seek(0)
                reader = csv.reader(f, delimiter=delimiter)
                for row in reader:
                    if not row or not row[0].strip() or not row[0].strip()[0].isdigit():
                        continue
                    try:
                        t, k, c, r = map(lambda x: float(x.replace(',', '.')), row[:4])
                    except (ValueError, IndexError):
                        logger.debug(f"Skipping malformed CSV row: {row}")
                        continue
                    t_list.append(t)
                    k_list.append(k)
                    c_list.append(c)
                    r_list.append(r)
        except OSError as e:
            logger.error(f"CSV Import failed: {e}")
            raise IOError(f"Failed to read CSV: {e}") from e

        if not t_list:
            raise ConfigurationError("filepath", filepath, "a CSV file with at least one data row")

        rows = sorted(zip(t_list, k_list, c_list, r_list))
        temps = [row[0] for row in rows]

        def table(values: List[float]) -> Dict[str, Any]:
            # Validates ordering and lengths
            return TabulatedProperty(tuple(temps), tuple(values)).to_dict()

        return cls(
            name=name,
            description=f"Imported from {filepath}",
            thermal_conductivity=table([row[1] for row in rows]),
            specific_heat=table([row[2] for row in rows]),
            density=table([row[3] for row in rows]),
            **phase_data,
        )


class MaterialLibrary:
    """
    Manages a library of materials, including loading from files
    and retrieving material definitions.
    """
    def __init__(self) -> None:
        self.materials: Dict[str, MaterialRecord] = {}
        self._init_defaults()

    def _init_defaults(self) -> None:
        self.add_material(MaterialRecord(
            name="Carbon Steel",
            description="Plain carbon steel charge",
            density=7850.0,
            specific_heat=500.0,
            thermal_conductivity=50.0,
            emissivity=0.8,
            melting_point=1811.0,
            latent_heat_fusion=247000.0,
            vaporization_point=3134.0,
            latent_heat_vaporization=6.09e6,
        ))
        self.add_material(MaterialRecord(
            name="Stainless Steel",
            description="Austenitic stainless steel charge",
            density=8000.0,
            specific_heat=500.0,
            thermal_conductivity=16.0,
            emissivity=0.7,
            melting_point=1673.0,
            latent_heat_fusion=247000.0,
            vaporization_point=3073.0,
            latent_heat_vaporization=6.09e6,
        ))
        self.add_material(MaterialRecord(
            name="Aluminum",
            description="Pure aluminium charge",
            density=2700.0,
            specific_heat=900.0,
            thermal_conductivity=237.0,
            emissivity=0.9,
            melting_point=933.0,
            latent_heat_fusion=397000.0,
            vaporization_point=2792.0,
            latent_heat_vaporization=1.05e7,
        ))
        self.add_material(MaterialRecord(
            name="Concrete",
            description="Refractory concrete, no phase change modeled",
            density=2400.0,
            specific_heat=880.0,
            thermal_conductivity=1.0,
            emissivity=0.9,
        ))

    def add_material(self, material: MaterialRecord) -> None:
        """Add or update a material in the library."""
        self.materials[material.name] = material

    def get_record(self, name: str) -> MaterialRecord:
        """Retrieve a material record by name."""
        try:
            return self.materials[name]
        except KeyError:
            raise ConfigurationError("material", name, f"one of {self.get_names()}") from None

    def get_material(self, name: str) -> Material:
        """Build the solver material for ``name``."""
        return self.get_record(name).to_material()

    def get_names(self) -> List[str]:
        """List all material names in the library."""
        return list(self.materials.keys())

    def to_dict(self) -> Dict[str, Any]:
        return {name: record.to_dict() for name, record in self.materials.items()}

    def save_json(self, filepath: str) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved {len(self.materials)} materials to {filepath}")

    def load_json(self, filepath: str) -> None:
        """Add (or replace) materials from a JSON file written by ``save_json``."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        for record in data.values():
            self.add_material(MaterialRecord.from_dict(record))
        logger.info(f"Loaded {len(data)} materials from {filepath}")
