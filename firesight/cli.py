"""
Command-line interface for Firesight.

Commands:
- firesight init: Generate configuration template
- firesight preprocess: Process a raw perimeter collection to JSON
- firesight search: Look up historical fires by name, year or location
- firesight predict: Predict directional spread from historical analogs
- firesight terrain: Terrain metrics and tactical assessment at a point
- firesight iap: Relevant historical IAP insights
- firesight briefing: Full incident briefing
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click

from firesight.iap.records import Category
from firesight.incident import FuelType, Incident, Weather

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if quiet:
        log_level = logging.ERROR
    elif verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _load_engine(config_path: Path, verbose: bool = False, quiet: bool = False):
    from firesight.config import load_config, setup_logging, validate_paths
    from firesight.engine import build_engine

    config = load_config(config_path)
    # Command-line flags take precedence over output.log_level
    if not (verbose or quiet):
        setup_logging(config)
    for warning in validate_paths(config):
        logger.warning(warning)
    return build_engine(config)


def _emit(data: dict[str, Any], as_json: bool, human: Callable[[], None]) -> None:
    if as_json:
        from firesight.io import to_jsonable

        click.echo(json.dumps(to_jsonable(data), indent=2))
    else:
        human()


def _incident(lat, lon, fuel="mixed", radius_m=None, acres=None) -> Incident:
    return Incident(lat=lat, lon=lon, fuel=FuelType(fuel), radius_m=radius_m, acres=acres)


def common_options(f):
    f = click.option("--quiet", "-q", is_flag=True, help="Only log errors")(f)
    f = click.option("--verbose", "-v", is_flag=True, help="Verbose output")(f)
    f = click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a summary")(f)
    return f


def location_options(f):
    f = click.option("--lon", type=click.FloatRange(-180, 180), required=True, help="Longitude")(f)
    f = click.option("--lat", type=click.FloatRange(-90, 90), required=True, help="Latitude")(f)
    return f


def incident_options(f):
    f = click.option("--acres", type=float, help="Current incident size (acres)")(f)
    f = click.option("--radius-m", type=float, help="Estimated perimeter radius (m)")(f)
    f = click.option("--humidity", type=float, required=True, help="Relative humidity (%)")(f)
    f = click.option("--wind-dir", type=float, required=True, help="Wind direction, from (degrees)")(f)
    f = click.option("--wind-speed", type=float, required=True, help="Wind speed (m/s)")(f)
    f = click.option(
        "--fuel",
        type=click.Choice([fuel.value for fuel in FuelType]),
        required=True,
        help="Fuel category",
    )(f)
    return location_options(f)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(package_name="firesight")
def main():
    """
    FIRESIGHT: Historical fire-pattern analytics

    Directional spread tendencies, terrain metrics and relevant historical
    Incident Action Plans for an active wildfire.

    \b
    Quick Start:
        firesight init -o firesight.yaml
        firesight predict firesight.yaml --lat 34.2 --lon -118.5 --wind-dir 45
    """
    pass


# =============================================================================
# Init Command
# =============================================================================


@main.command()
@click.option("--output", "-o", type=click.Path(path_type=Path), default=Path("firesight.yaml"),
              help="Output path for configuration")
@click.option("--name", default="firesight", help="Project name")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def init(output: Path, name: str, force: bool):
    """Generate configuration template."""
    from firesight.config import export_config_template

    if output.exists() and not force:
        click.echo(f"File exists: {output}. Use --force to overwrite.", err=True)
        sys.exit(1)

    export_config_template(output, name=name)
    click.echo(f"Created configuration: {output}")


# =============================================================================
# Preprocess Command
# =============================================================================


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), default=Path("processed_perimeters.json"),
              help="Output JSON path")
@click.option("--max-duration", type=float, default=8760.0, help="Longest accepted duration (hours)")
@common_options
def preprocess(input_path: Path, output: Path, max_duration: float, as_json: bool, verbose: bool, quiet: bool):
    """
    Process a historical perimeter collection.

    Reads any vector format GeoPandas can open and writes
    {fires, processedAt, stats} as JSON.
    """
    _setup_logging(verbose, quiet)

    try:
        from firesight.io import read_perimeter_collection, write_processed_perimeters
        from firesight.perimeter import ProcessingStats, process_all_perimeters, summarize_perimeters

        stats = ProcessingStats()
        records = read_perimeter_collection(input_path, stats=stats)
        perimeters, stats = process_all_perimeters(records, max_duration_hours=max_duration, stats=stats)
        write_processed_perimeters(output, perimeters, stats)
        summary = summarize_perimeters(perimeters)

        def human():
            click.echo(f"Processed {stats.total} records from {input_path.name}")
            click.echo(f"  Successful: {stats.successful}")
            click.echo(f"  Skipped:    {stats.skipped}")
            click.echo(f"  Failed:     {stats.failed}")
            for reason, count in sorted(stats.skip_reasons.items()):
                click.echo(f"    {reason}: {count}")
            click.echo(f"Total acreage: {summary['total_acres']:,.0f}")
            for fire_name, acres in summary["largest"]:
                click.echo(f"  {fire_name}: {acres:,.0f} acres")
            click.echo(f"Wrote: {output}")

        _emit(
            {"stats": stats.to_dict(), "skip_reasons": stats.skip_reasons, "summary": summary, "output": str(output)},
            as_json,
            human,
        )

    except Exception:
        logger.exception("Preprocessing failed")
        sys.exit(1)


# =============================================================================
# Query Commands
# =============================================================================


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@click.option("--name", help="Case-insensitive name substring")
@click.option("--year", type=int, help="Fire year")
@click.option("--lat", type=click.FloatRange(-90, 90), help="Latitude")
@click.option("--lon", type=click.FloatRange(-180, 180), help="Longitude")
@click.option("--radius", type=float, help="Search radius (km)")
@click.option("--limit", type=int, help="Maximum results")
@common_options
def search(config_path, name, year, lat, lon, radius, limit, as_json, verbose, quiet):
    """Look up historical fires by name, year or location."""
    _setup_logging(verbose, quiet)

    if name is None and year is None and (lat is None or lon is None):
        click.echo("Provide --name, --year, or both --lat and --lon", err=True)
        sys.exit(1)

    try:
        engine = _load_engine(config_path, verbose, quiet)
        defaults = engine.config.index
        limit = limit or defaults.default_limit

        if name is not None:
            matches = [(fire, None) for fire in engine.index.find_by_name(name, limit=limit)]
        elif year is not None:
            matches = [(fire, None) for fire in engine.index.find_by_year(year, limit=limit)]
        else:
            radius = radius or defaults.default_radius_km
            matches = engine.index.find_near_with_distance(lat, lon, radius_km=radius, limit=limit)

        def human():
            click.echo(f"Found {len(matches)} fire(s)")
            for fire, distance in matches:
                line = f"  {fire.year}  {fire.fire_name:<24} {fire.acres:>12,.0f} ac  {fire.shape.dominant_direction}"
                if distance is not None:
                    line += f"  {distance:.1f} km"
                click.echo(line)

        results = []
        for fire, distance in matches:
            entry = fire.to_dict()
            if distance is not None:
                entry["distance_km"] = distance
            results.append(entry)
        _emit({"count": len(results), "fires": results}, as_json, human)

    except Exception:
        logger.exception("Search failed")
        sys.exit(1)


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@location_options
@click.option("--wind-dir", type=float, required=True, help="Wind direction, from (degrees)")
@common_options
def predict(config_path, lat, lon, wind_dir, as_json, verbose, quiet):
    """Predict directional spread from historical analogs."""
    _setup_logging(verbose, quiet)

    try:
        engine = _load_engine(config_path, verbose, quiet)
        prediction = engine.predict(_incident(lat, lon), wind_dir)

        def human():
            click.echo(f"Likely direction: {prediction.likely_direction} ({prediction.confidence} confidence)")
            for line in prediction.reasoning:
                click.echo(f"  - {line}")

        _emit(prediction.to_dict(), as_json, human)

    except Exception:
        logger.exception("Prediction failed")
        sys.exit(1)


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@location_options
@common_options
def terrain(config_path, lat, lon, as_json, verbose, quiet):
    """Terrain metrics and tactical assessment at a point."""
    from firesight.terrain import assess_terrain_tactical_value

    _setup_logging(verbose, quiet)

    try:
        engine = _load_engine(config_path, verbose, quiet)
        metrics = engine.analyze_terrain(lat, lon)
        assessment = assess_terrain_tactical_value(metrics)

        def human():
            if metrics.synthetic:
                click.echo("(synthetic elevation - not measured data)")
            click.echo(f"Elevation: {metrics.elevation:.0f} m")
            click.echo(f"Slope: {metrics.slope:.1f}% ({metrics.terrain_type})")
            click.echo(f"Aspect: {metrics.aspect}")
            for note in metrics.notes:
                click.echo(f"  - {note}")
            for advantage in assessment.advantages:
                click.echo(f"  + {advantage}")
            for hazard in assessment.hazards:
                click.echo(f"  ! {hazard}")

        _emit({"terrain": metrics.to_dict(), "tactical_assessment": assessment.to_dict()}, as_json, human)

    except Exception:
        logger.exception("Terrain analysis failed")
        sys.exit(1)


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@incident_options
@click.option("--category", type=click.Choice([c.value for c in Category]), default=Category.TACTICS.value,
              help="Recommendation category")
@click.option("--with-terrain/--no-terrain", default=True, help="Use terrain in tactics scoring")
@common_options
def iap(config_path, lat, lon, fuel, wind_speed, wind_dir, humidity, radius_m, acres, category,
        with_terrain, as_json, verbose, quiet):
    """Relevant historical IAP insights for an incident."""
    _setup_logging(verbose, quiet)

    try:
        engine = _load_engine(config_path, verbose, quiet)
        incident = _incident(lat, lon, fuel, radius_m, acres)
        weather = Weather(wind_speed_mps=wind_speed, wind_bearing_deg=wind_dir, humidity_pct=humidity)
        category = Category(category)

        metrics = None
        if with_terrain and category is Category.TACTICS:
            metrics = engine.analyze_terrain(lat, lon)

        insights = engine.find_iaps(incident, weather, category, metrics)

        def human():
            if not insights:
                click.echo("No relevant IAPs found")
            for insight in insights:
                click.echo(f"[{insight.relevance_score}] {insight.iap_name} ({insight.section_type.value})")
                click.echo(f"    {insight.tactical_snippet}")
                for reason in insight.reasoning:
                    click.echo(f"  - {reason}")

        _emit({"category": category.value, "insights": [i.to_dict() for i in insights]}, as_json, human)

    except Exception:
        logger.exception("IAP matching failed")
        sys.exit(1)


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
@incident_options
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Also write the briefing to this file")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def briefing(config_path, lat, lon, fuel, wind_speed, wind_dir, humidity, radius_m, acres,
             output: Optional[Path], verbose, quiet):
    """Full incident briefing as JSON."""
    from firesight.io import to_jsonable

    _setup_logging(verbose, quiet)

    try:
        engine = _load_engine(config_path, verbose, quiet)
        incident = _incident(lat, lon, fuel, radius_m, acres)
        weather = Weather(wind_speed_mps=wind_speed, wind_bearing_deg=wind_dir, humidity_pct=humidity)

        payload = json.dumps(to_jsonable(engine.brief(incident, weather).to_dict()), indent=2)
        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(payload)
            logger.info(f"Wrote briefing to {output}")
        click.echo(payload)

    except Exception:
        logger.exception("Briefing failed")
        sys.exit(1)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
