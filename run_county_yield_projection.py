import os
from dataclasses import replace

import matplotlib.pyplot as plt

from yieldmap.data.sources.nass_quickstats import QuickStatsConfig, quickstats_county_yield
from yieldmap.pipeline import CountyProjectionConfig, run_county_projection
from yieldmap.render import plot_choropleth, plot_grid, plot_side_by_side


def main():
    cfg = CountyProjectionConfig()

    out_dir = os.path.join("docs", "figures")
    os.makedirs(out_dir, exist_ok=True)

    # No spreadsheet export on disk: pull the same estimates from the API instead
    yields = None
    if not cfg.yield_table.path.exists() and os.environ.get("NASS_QUICKSTATS_KEY", "").strip():
        yields = quickstats_county_yield(cfg=QuickStatsConfig(), year=cfg.baseline_year, state_fips=cfg.state_fips)
        cfg = replace(cfg, join=replace(cfg.join, fallback_county_name="OTHER (COMBINED) COUNTIES"))

    res = run_county_projection(cfg, yields=yields)
    counties = res.counties

    print(f"Counties: {len(counties)}  yield records: {len(res.yields)}")
    if res.backfilled:
        print(
            f"WARNING: {len(res.backfilled)} counties have no yield record; "
            f"using '{cfg.join.fallback_county_name}': {res.backfilled}"
        )
    missing = counties[counties["yieldPctChange"].isna()]
    if len(missing):
        print(f"WARNING: no valid raster cells for counties {missing[cfg.join.county_col].tolist()}")

    # 1) Observed yield
    ax, _ = plot_choropleth(
        counties,
        "Yield",
        n_classes=5,
        cmap="Greens",
        title=f"Observed Corn Yield ({cfg.baseline_year})",
        legend_title="Yield (bu/Acre)",
    )
    ax.figure.savefig(os.path.join(out_dir, "observed_yield.png"), dpi=200, bbox_inches="tight")

    # 2) Simulated yield, same colour limits so both years compare directly
    fig, axes = plt.subplots(1, 2, figsize=(11, 6))
    plot_grid(res.baseline, counties, vmin=3, vmax=11, title=f"Simulated yield {cfg.baseline_year}", ax=axes[0])
    plot_grid(res.future, counties, vmin=3, vmax=11, title=f"Simulated yield {cfg.future_year}", ax=axes[1])
    fig.savefig(os.path.join(out_dir, "simulated_yield.png"), dpi=200, bbox_inches="tight")

    ax = plot_grid(res.change, counties, cmap="RdBu", title="Simulated yield change (%)")
    ax.figure.savefig(os.path.join(out_dir, "simulated_pct_change.png"), dpi=200, bbox_inches="tight")

    # 3) County % change; darker = larger reduction
    ax, _ = plot_choropleth(
        counties,
        "yieldPctChange",
        n_classes=5,
        cmap="Blues",
        reverse=True,
        title=f"Percentage change in corn yield\nfrom {cfg.baseline_year} to {cfg.future_year}",
        legend_title="Change (%)",
        label_fmt="{:.0f}",
    )
    ax.figure.savefig(os.path.join(out_dir, "yield_pct_change.png"), dpi=200, bbox_inches="tight")

    # 4) Observed vs projected on one scale
    shown = counties.assign(Yield=counties["Yield"].round(0), YieldProjected=counties["YieldProjected"].round(0))
    fig, _ = plot_side_by_side(
        shown,
        "Yield",
        "YieldProjected",
        n_classes=9,
        cmap="Greens",
        titles=(f"Observed Corn Yield\n({cfg.baseline_year})", f"Projected Corn Yield\n({cfg.future_year})"),
        legend_title="Yield (bu/Acre)",
    )
    out_path = os.path.join(out_dir, "observed_vs_projected_yield.png")
    fig.savefig(out_path, dpi=200, bbox_inches="tight")

    print(f"Wrote figures to: {out_dir}")
    cols = [c for c in (cfg.join.county_col, "NAME", "Yield", "yieldPctChange", "YieldProjected") if c in counties.columns]
    print(counties[cols].head())

    plt.show()


if __name__ == "__main__":
    main()
