from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AgmipConfig:
    """
    One AgMIP / GGCMI gridded yield simulation file.

    Each file holds an annual time series, one band per simulated year,
    for the window [start_year, end_year].
    """
    raw_dir: Path = Path("inputs")
    crop_model: str = "epic"
    gcm: str = "hadgem2-es"
    rcp: str = "rcp8p5"
    ssp: str = "ssp2"
    co2: str = "co2"
    irrigation: str = "noirr"
    crop: str = "mai"
    start_year: int = 2005
    end_year: int = 2035

    @property
    def filename(self) -> str:
        return (
            f"{self.crop_model}_{self.gcm}_{self.rcp}_{self.ssp}_{self.co2}_{self.irrigation}"
            f"_yield_{self.crop}_annual_{self.start_year}_{self.end_year}.nc4"
        )

    @property
    def path(self) -> Path:
        return self.raw_dir / self.filename

    @property
    def n_bands(self) -> int:
        return self.end_year - self.start_year + 1


def band_for_year(cfg: AgmipConfig, year: int) -> int:
    """
    1-based band index of `year` within the file's simulation window.
    """
    year = int(year)
    if not cfg.start_year <= year <= cfg.end_year:
        raise ValueError(f"year {year} outside simulation window {cfg.start_year}-{cfg.end_year}")
    return year - cfg.start_year + 1
