"""Command-line interface for Cadenza.

Provides commands for:
- generate: Random rhythm passage for practice
- quantize: Snap a captured performance to notation
- evaluate: Score a performance against a written passage
- detect: Pitch detection on an audio file
- export: Write a passage to MIDI
- algorithms: List the available pitch detectors
"""

import json
import math
import random
import typer
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table

from .core.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CHORD_TOLERANCE_MS,
    DEFAULT_MAX_FREQUENCY,
    DEFAULT_MEASURE_COUNT,
    DEFAULT_MIN_FREQUENCY,
    DEFAULT_SUBDIVISION,
    DEFAULT_TEMPO,
    DEFAULT_TEMPO_SUBDIVISION,
    DEFAULT_TIME_SIGNATURE,
    RHYTHM_NOTE_NAME,
)

app = typer.Typer(
    name="cadenza",
    help="Pitch detection and rhythm practice toolkit",
    rich_markup_mode="markdown",
)
console = Console()

MIDI_SUFFIXES = {".mid", ".midi"}


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _parse_time_signature(text: str):
    from .rhythm import TimeSignature

    try:
        return TimeSignature.parse(text)
    except ValueError as e:
        _fail(str(e))


def _read_json(path: Path) -> dict:
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return json.loads(path.read_text())
    except ValueError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _load_passage(path: Path):
    """DiscretePassage from its JSON exchange format."""
    from .rhythm import DiscretePassage

    data = _read_json(path)
    try:
        return DiscretePassage.from_dict(data)
    except ValueError as e:
        _fail(str(e))


def _load_performance(path: Path):
    """RawPassage from a MIDI file or a raw passage JSON file."""
    from .core import RawPassage
    from .input import MidiPerformanceReader

    if path.suffix.lower() in MIDI_SUFFIXES:
        try:
            return MidiPerformanceReader().to_raw_passage(path)
        except (ValueError, FileNotFoundError) as e:
            _fail(str(e))

    data = _read_json(path)
    try:
        return RawPassage.from_dict(data)
    except ValueError as e:
        _fail(str(e))


@app.command()
def generate(
    measures: int = typer.Option(
        DEFAULT_MEASURE_COUNT, "-m", "--measures", help="Number of measures"
    ),
    time_signature: str = typer.Option(
        DEFAULT_TIME_SIGNATURE, "-t", "--time-signature", help="Time signature, e.g. 3/4 or 6/8"
    ),
    subdivision: int = typer.Option(
        DEFAULT_SUBDIVISION, "-s", "--subdivision", help="Smallest subdivision (4, 8, 16, 32)"
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Random seed for a repeatable passage"
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write the passage JSON to this file"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output the passage as JSON (for scripting)"
    ),
):
    """Generate a random rhythm passage.

    **Examples:**

        cadenza generate -m 4 -t 3/4 -s 16

        cadenza generate --seed 7 -o passage.json
    """
    from .rhythm import PassageGenerator

    signature = _parse_time_signature(time_signature)
    generator = PassageGenerator(rng=random.Random(seed))

    try:
        passage = generator.generate_passage(measures, signature, subdivision)
    except ValueError as e:
        _fail(str(e))

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(passage.to_dict(), indent=2))

    if json_output:
        console.print_json(data=passage.to_dict())
        return

    _show_passage_table(passage, f"Passage ({signature}, 1/{subdivision} grid)")
    if output is not None:
        console.print(f"[green]Saved:[/green] {output}")


@app.command()
def quantize(
    input_file: Path = typer.Argument(..., help="Performance: raw passage JSON or MIDI file"),
    tempo: float = typer.Option(DEFAULT_TEMPO, "--tempo", help="Tempo (BPM)"),
    tempo_subdivision: int = typer.Option(
        DEFAULT_TEMPO_SUBDIVISION, "--beat", help="Note value that gets one beat"
    ),
    subdivision: int = typer.Option(
        DEFAULT_SUBDIVISION, "-s", "--subdivision", help="Grid resolution"
    ),
    time_signature: str = typer.Option(DEFAULT_TIME_SIGNATURE, "-t", "--time-signature"),
    measures: int = typer.Option(
        0, "-m", "--measures", help="Number of measures. 0 = fit the performance"
    ),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write the passage JSON to this file"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """Quantize a captured performance into notation."""
    from .processing import RawToDiscreteConverter, SnapperConfig, SubdivisionSnapper

    signature = _parse_time_signature(time_signature)
    performance = _load_performance(input_file)

    try:
        snapper = SubdivisionSnapper(
            SnapperConfig(
                tempo=tempo,
                tempo_subdivision=tempo_subdivision,
                subdivision_resolution=subdivision,
                time_signature=signature,
            )
        )
        if measures <= 0:
            units = snapper.snap_start_offset(performance.duration_ms)
            measures = max(1, math.ceil(units / snapper.subdivisions_per_measure))
        passage = RawToDiscreteConverter(snapper).convert(
            performance, measures, RHYTHM_NOTE_NAME
        )
    except ValueError as e:
        _fail(str(e))

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(passage.to_dict(), indent=2))

    if json_output:
        console.print_json(data=passage.to_dict())
        return

    console.print(
        f"[blue]Quantized[/blue] {len(performance)} notes into {measures} measure(s)"
    )
    _show_passage_table(passage, "Quantized Passage")


@app.command()
def evaluate(
    expected_file: Path = typer.Argument(..., help="Written passage JSON"),
    performance_file: Path = typer.Argument(..., help="Performance: raw passage JSON or MIDI"),
    tempo: float = typer.Option(DEFAULT_TEMPO, "--tempo", help="Tempo (BPM)"),
    tempo_subdivision: int = typer.Option(
        DEFAULT_TEMPO_SUBDIVISION, "--beat", help="Note value that gets one beat"
    ),
    time_signature: str = typer.Option(DEFAULT_TIME_SIGNATURE, "-t", "--time-signature"),
    chord_tolerance: float = typer.Option(
        DEFAULT_CHORD_TOLERANCE_MS, "--chord-tolerance", help="Notes this close (ms) count as one chord"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """Score a performance's timing against a written passage."""
    from .evaluation import EvaluationContext, PassageEvaluator

    signature = _parse_time_signature(time_signature)
    expected = _load_passage(expected_file)
    performance = _load_performance(performance_file)

    try:
        context = EvaluationContext(
            tempo=tempo,
            tempo_subdivision=tempo_subdivision,
            subdivision_resolution=expected.resolution or DEFAULT_SUBDIVISION,
        )
        evaluator = PassageEvaluator(context, chord_tolerance_ms=chord_tolerance)
        result = evaluator.evaluate(expected, performance, signature)
    except ValueError as e:
        _fail(str(e))

    if json_output:
        console.print_json(data=result.to_dict())
        return

    score = result.rhythm_score
    color = "green" if score >= 0.8 else "yellow" if score >= 0.5 else "red"
    console.print(f"\n[bold]Rhythm score:[/bold] [{color}]{score:.0%}[/{color}]")
    for critique in sorted(result.rhythm_evaluation.passage_critiques):
        console.print(f"  [yellow]{critique}[/yellow]")

    if result.rhythm_evaluation.note_critiques:
        table = Table(title="Note Critiques")
        table.add_column("Note", style="cyan")
        table.add_column("Start (ms)", style="green")
        table.add_column("Critique", style="yellow")
        for index, critique in sorted(result.rhythm_evaluation.note_critiques.items()):
            table.add_row(
                str(index + 1),
                str(performance.notes[index].start_offset_ms),
                critique.description,
            )
        console.print(table)


@app.command()
def detect(
    input_file: Path = typer.Argument(..., help="Input audio file"),
    algorithm: str = typer.Option(
        "aggregate", "-a", "--algorithm", help="Detector: aggregate, yin, mcleod, hps, yaapt, autocorrelation"
    ),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer", help="Samples per analysis buffer"),
    hop: int = typer.Option(0, "--hop", help="Samples between buffers. 0 = half a buffer"),
    min_frequency: float = typer.Option(DEFAULT_MIN_FREQUENCY, "--fmin", help="Lowest pitch (Hz)"),
    max_frequency: float = typer.Option(DEFAULT_MAX_FREQUENCY, "--fmax", help="Highest pitch (Hz)"),
    trim: bool = typer.Option(
        False, "--trim", help="Drop leading and trailing silence before detection"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Show every frame"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """Detect the pitch of an audio file, buffer by buffer."""
    from .input import AudioLoader
    from .pitch import PitchDetectorConfig, PitchTracker, create_algorithm

    detector = create_algorithm(algorithm)
    if detector is None:
        _fail(f"Unknown algorithm: {algorithm}")

    loader = AudioLoader()
    try:
        audio, sr = loader.load(str(input_file))
    except (ValueError, FileNotFoundError) as e:
        _fail(str(e))

    if trim:
        audio = loader.trim_silence(audio)

    config = PitchDetectorConfig(
        sample_rate=sr,
        buffer_size=buffer_size,
        min_frequency=min_frequency,
        max_frequency=max_frequency,
    )
    tracker = PitchTracker(config=config, detector=detector)

    if not json_output:
        console.print(f"[blue]Detecting pitch ({detector.name}):[/blue] {input_file}")
    readings = tracker.track(audio, hop_length=hop or None)

    if json_output:
        console.print_json(
            data={
                "input": str(input_file),
                "algorithm": detector.name,
                "duration": loader.get_duration(audio, sr),
                "frames": [
                    {
                        "time": round(time, 4),
                        "frequency": round(reading.frequency, 2),
                        "note": reading.note_name,
                        "cents": round(reading.cents_deviation, 1),
                        "confidence": round(reading.confidence, 3),
                    }
                    for time, reading in readings
                ],
            }
        )
        return

    if not readings:
        console.print("[yellow]No pitch detected[/yellow]")
        return

    frequencies = sorted(reading.frequency for _, reading in readings)
    median = frequencies[len(frequencies) // 2]
    summary = next(r for _, r in readings if r.frequency == median)
    console.print(
        f"  Median pitch: [bold]{summary.note_name}[/bold] "
        f"{median:.1f} Hz ({summary.cents_deviation:+.0f} cents), "
        f"{len(readings)} voiced buffers"
    )

    if verbose:
        _show_readings_table(readings)


@app.command()
def export(
    input_file: Path = typer.Argument(..., help="Passage JSON"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output MIDI file path"),
    tempo: float = typer.Option(DEFAULT_TEMPO, "--tempo", help="Tempo (BPM)"),
    tempo_subdivision: int = typer.Option(
        DEFAULT_TEMPO_SUBDIVISION, "--beat", help="Note value that gets one beat"
    ),
    time_signature: str = typer.Option(DEFAULT_TIME_SIGNATURE, "-t", "--time-signature"),
):
    """Export a passage to a MIDI file."""
    from .output import PassageMIDIExporter

    signature = _parse_time_signature(time_signature)
    passage = _load_passage(input_file)

    if output is None:
        output = input_file.with_suffix(".mid")

    try:
        exporter = PassageMIDIExporter(
            tempo=tempo,
            tempo_subdivision=tempo_subdivision,
            subdivision_resolution=passage.resolution or DEFAULT_SUBDIVISION,
            time_signature=signature,
        )
        exporter.export(passage, output)
    except ValueError as e:
        _fail(str(e))

    console.print(f"[green]Exported:[/green] {output}")


@app.command()
def algorithms():
    """List the available pitch detection algorithms."""
    from .pitch import available_algorithms

    for name in available_algorithms():
        console.print(f"  {name}")


def _show_passage_table(passage, title: str):
    """Display a passage, one row per measure."""
    table = Table(title=title)
    table.add_column("Measure", style="cyan")
    table.add_column("Notation", style="green")
    table.add_column("Notes", style="yellow")

    for index, (measure, tokens) in enumerate(
        zip(passage.measures, passage.to_vexflow_notation()), start=1
    ):
        onsets = sum(1 for e in measure.elements if e.is_note and not e.tied_from_previous)
        table.add_row(str(index), ", ".join(tokens), str(onsets))

    console.print(table)


def _show_readings_table(readings):
    """Display pitch readings in a table."""
    table = Table(title="Pitch Readings")
    table.add_column("Time (s)", style="cyan")
    table.add_column("Frequency", style="green")
    table.add_column("Note", style="yellow")
    table.add_column("Cents", style="blue")
    table.add_column("Confidence", style="magenta")

    for time, reading in readings:
        table.add_row(
            f"{time:.3f}",
            f"{reading.frequency:.1f} Hz",
            reading.note_name,
            f"{reading.cents_deviation:+.1f}",
            f"{reading.confidence:.2f}",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
