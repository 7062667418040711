from datetime import datetime
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Electricity Maps reports megawatts, usually whole numbers
Power = Optional[Union[int, float]]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Zone(_Payload):
    country_name: Optional[str] = Field(default=None, alias="countryName")
    zone_name: Optional[str] = Field(default=None, alias="zoneName")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    access: Optional[str] = None


class EnergyMix(_Payload):
    nuclear: Power = None
    geothermal: Power = None
    biomass: Power = None
    coal: Power = None
    wind: Power = None
    solar: Power = None
    hydro: Power = None
    gas: Power = None
    oil: Power = None
    unknown: Power = None
    hydro_discharge: Power = Field(default=None, alias="hydro discharge")
    battery_discharge: Power = Field(default=None, alias="battery discharge")


class PowerBreakdown(_Payload):
    """``/power-breakdown/latest`` as returned by the upstream API."""

    zone: str
    timestamp: Optional[datetime] = Field(default=None, alias="datetime")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    power_consumption_breakdown: EnergyMix = Field(
        default_factory=EnergyMix, alias="powerConsumptionBreakdown"
    )
    power_production_breakdown: EnergyMix = Field(
        default_factory=EnergyMix, alias="powerProductionBreakdown"
    )
    power_import_breakdown: Dict[str, Power] = Field(
        default_factory=dict, alias="powerImportBreakdown"
    )
    power_export_breakdown: Dict[str, Power] = Field(
        default_factory=dict, alias="powerExportBreakdown"
    )
    fossil_free_percentage: Power = Field(default=None, alias="fossilFreePercentage")
    renewable_percentage: Power = Field(default=None, alias="renewablePercentage")
    power_consumption_total: Power = Field(default=None, alias="powerConsumptionTotal")
    power_production_total: Power = Field(default=None, alias="powerProductionTotal")
    power_import_total: Power = Field(default=None, alias="powerImportTotal")
    power_export_total: Power = Field(default=None, alias="powerExportTotal")
    is_estimated: Optional[bool] = Field(default=None, alias="isEstimated")
    estimation_method: Optional[str] = Field(default=None, alias="estimationMethod")


class AdornedFlow(_Payload):
    zone_name: Optional[str] = Field(default=None, alias="zoneName")
    value: Power = None


class AdornedPowerBreakdown(PowerBreakdown):
    """Power breakdown with import/export partners resolved to zone names."""

    zone_name: Optional[str] = Field(default=None, alias="zoneName")
    power_import_breakdown: Dict[str, AdornedFlow] = Field(
        default_factory=dict, alias="powerImportBreakdown"
    )
    power_export_breakdown: Dict[str, AdornedFlow] = Field(
        default_factory=dict, alias="powerExportBreakdown"
    )


ZONES = TypeAdapter(Dict[str, Zone])
POWER_BREAKDOWN = TypeAdapter(PowerBreakdown)
