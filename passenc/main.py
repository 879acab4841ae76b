import typer
from pathlib import Path
from typing import Optional, Tuple
from pydantic import ValidationError
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn

from passenc.config.loader import load_config
from passenc.domain.errors import EncoderError
from passenc.domain.filters import ResizeFilter, RotateFilter
from passenc.domain.formats import FORMATS
from passenc.domain.models import TimeCode
from passenc.infrastructure.logging import setup_logging
from passenc.pipeline.session import EncoderSession

app = typer.Typer(help="passenc - multi-pass ffmpeg encode jobs")


def _parse_size(value: str) -> Tuple[int, int]:
    try:
        width, height = value.lower().split("x")
        return int(width), int(height)
    except ValueError:
        raise typer.BadParameter(f"Expected WIDTHxHEIGHT, got '{value}'")


def _parse_timecode(value: str) -> TimeCode:
    try:
        return TimeCode.from_seconds(float(value))
    except ValueError:
        pass
    try:
        return TimeCode.from_string(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _fail(message: str, code: int = 1):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.command()
def encode(
    input_file: Path = typer.Argument(..., help="Source media file"),
    output_file: Path = typer.Argument(..., help="Destination file"),
    format_name: str = typer.Option("x264", "--format", "-f", help=f"Target format ({', '.join(FORMATS)})"),
    passes: Optional[int] = typer.Option(None, "--passes", "-p", help="Override number of passes"),
    vcodec: Optional[str] = typer.Option(None, "--vcodec", help="Override video codec"),
    acodec: Optional[str] = typer.Option(None, "--acodec", help="Override audio codec"),
    bitrate: Optional[int] = typer.Option(None, "--bitrate", help="Video bitrate in kb/s"),
    audio_bitrate: Optional[int] = typer.Option(None, "--audio-bitrate", help="Audio bitrate in kb/s"),
    channels: Optional[int] = typer.Option(None, "--channels", help="Audio channel count"),
    rotate: Optional[int] = typer.Option(None, "--rotate", help="Rotate by 90, 180 or 270 degrees"),
    resize: Optional[str] = typer.Option(None, "--resize", help="Scale to WIDTHxHEIGHT"),
    clip_start: Optional[str] = typer.Option(None, "--clip-start", help="Start timecode (HH:MM:SS.FF or seconds)"),
    clip_duration: Optional[str] = typer.Option(None, "--clip-duration", help="Clip duration"),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", min=1, help="ffmpeg thread count"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Write passenc.log into this directory"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Encode a file, running every pass the format requires."""
    if not input_file.exists():
        _fail(f"File {input_file} does not exist.")
    if format_name not in FORMATS:
        _fail(f"Unknown format '{format_name}'. Choose from: {', '.join(FORMATS)}")

    overrides = {
        "passes": passes,
        "video_codec": vcodec,
        "audio_codec": acodec,
        "kilo_bitrate": bitrate,
        "audio_kilo_bitrate": audio_bitrate,
        "audio_channels": channels,
    }
    try:
        target = FORMATS[format_name](**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        _fail(f"Invalid format options: {e}")

    try:
        config = load_config(config_path)
        if threads:
            config.ffmpeg.threads = threads
        if debug:
            config.debug = True
        logger = setup_logging(log_dir, debug=config.debug)
        logger.info(f"passenc started: input={input_file}, output={output_file}, format={format_name}")

        session = EncoderSession(config)
        video = session.open(input_file)
        if clip_start is not None:
            video.filters().clip(
                _parse_timecode(clip_start),
                _parse_timecode(clip_duration) if clip_duration else None,
            )
        # ffmpeg keeps only the last -vf, so rotation and scaling share one graph
        graph = []
        if rotate is not None:
            graph.append(RotateFilter(rotate).expression)
        if resize is not None:
            graph.append(ResizeFilter(*_parse_size(resize)).expression)
        if graph:
            video.filters().custom(["-vf", ",".join(graph)])

        with Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
        ) as progress:
            task = progress.add_task(f"Encoding {input_file.name}", total=100)
            target.on_progress(lambda info: progress.update(
                task,
                completed=info.percent,
                description=f"Pass {info.pass_index}/{info.total_passes}",
            ))
            video.save(target, output_file)
            progress.update(task, completed=100)

        typer.secho(f"Saved {output_file}", fg=typer.colors.GREEN)

    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user")
        raise typer.Exit(code=130)
    except (EncoderError, FileNotFoundError, ValueError) as e:
        _fail(str(e))


@app.command()
def frame(
    input_file: Path = typer.Argument(..., help="Source video file"),
    timecode: str = typer.Argument(..., help="HH:MM:SS.FF or seconds"),
    output_file: Path = typer.Argument(..., help="Image file to write"),
    accurate: bool = typer.Option(False, "--accurate", help="Decode up to the timecode instead of seeking"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
):
    """Extract a single frame as an image."""
    at = _parse_timecode(timecode)
    try:
        config = load_config(config_path)
        setup_logging(None, debug=config.debug)
        video = EncoderSession(config).open(input_file)
        video.frame(at).save(output_file, accurate=accurate)
    except (EncoderError, FileNotFoundError) as e:
        _fail(str(e))
    typer.secho(f"Saved {output_file}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
