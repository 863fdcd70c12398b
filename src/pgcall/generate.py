"""Write all artifacts for a harvested function list.

The proto schema (followed by its compilation) and the JSON manifest are
produced by independent tasks running side by side. Each task gets its
own output file and, for the schema, its own DedupRegistry.
"""

from __future__ import annotations

import io
import logging
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Sequence

from pgcall.base import CompilerError
from pgcall.config import Settings
from pgcall.models import Function, dump_functions
from pgcall.proto import DedupRegistry, save_protobuf

log = logging.getLogger(__name__)

DEFAULT_NAME = "pgcall"

Task = Callable[[Sequence[Function]], None]


def parse_pkg_flag(value: str) -> tuple[str, str]:
    """Split ``"my/pb-pkg:main"`` into path and package name.

    Without a colon the package name is the last path element.
    """
    path, colon, pkg = value.partition(":")
    if colon:
        return path, pkg
    return path, Path(path).name if path not in ("", "-") else DEFAULT_NAME


@dataclass
class Outputs:
    """Files written by run()."""

    proto: Path
    manifest: Path
    emitted: list[Function]


def protoc_args(
    proto_file: Path, base_dir: Path, generator: str, include: Iterable[str] = ()
) -> list[str]:
    """Command line compiling ``proto_file`` with protoc-gen-``generator``."""
    args = ["protoc", f"--proto_path={base_dir}:."]
    args.extend(f"--proto_path={path}" for path in include)
    args.append(f"--{generator}_out={base_dir}")
    args.append(str(proto_file))
    return args


def compile_proto(
    proto_file: Path, base_dir: Path, generator: str, include: Iterable[str] = ()
) -> None:
    """Run protoc on ``proto_file``, writing ``generator`` output to ``base_dir``.

    ``include`` lists extra import directories, such as the one holding
    ``github.com/gogo/protobuf/gogoproto/gogo.proto``.

    Raises:
        CompilerError: protoc is missing or exits with a non-zero status.
    """
    args = protoc_args(proto_file, base_dir, generator, include)
    log.info("Compiling %s", proto_file)
    if shutil.which(args[0]) is None:
        raise CompilerError(args, None, "protoc not found in PATH")
    result = subprocess.run(args, capture_output=True, text=True)
    if result.returncode != 0:
        raise CompilerError(args, result.returncode, result.stderr)
    if result.stdout:
        log.debug("protoc: %s", result.stdout.rstrip())


def write_proto(
    path: Path, functions: Sequence[Function], package: str, settings: Settings
) -> list[Function]:
    """Write the schema file.

    The schema is rendered in memory and moved into place complete, so a
    failed run leaves no partial file behind.
    """
    buf = io.StringIO()
    emitted = save_protobuf(buf, functions, package, settings, registry=DedupRegistry())

    path.parent.mkdir(parents=True, exist_ok=True)
    log.info("Writing Protocol Buffers to %s", path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(buf.getvalue())
        tmp.replace(path)
    finally:
        tmp.unlink(missing_ok=True)
    return emitted


def write_manifest(path: Path, functions: Sequence[Function]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    log.info("Writing function manifest to %s", path)
    with path.open("w") as fh:
        dump_functions(functions, fh)


def run(
    functions: Sequence[Function],
    settings: Settings,
    *,
    base_dir: Path,
    pb_path: str = "",
    pb_package: str = "",
    compile_schema: bool = True,
    extra_tasks: Iterable[Task] = (),
) -> Outputs:
    """Generate the schema and the manifest, and compile the schema.

    All tasks run to completion. If any of them failed, the first failure
    (in completion order) is raised afterwards; files written by the other
    tasks are left in place.
    """
    out_dir = Path(base_dir) / pb_path
    stem = pb_package or DEFAULT_NAME
    proto_file = out_dir / f"{stem}.proto"
    manifest_file = out_dir / f"{stem}.functions.json"
    emitted: list[Function] = []

    def schema_task(fns: Sequence[Function]) -> None:
        emitted.extend(write_proto(proto_file, fns, pb_package, settings))
        if compile_schema:
            compile_proto(
                proto_file, Path(base_dir), settings.protoc_gen, settings.proto_path
            )

    def manifest_task(fns: Sequence[Function]) -> None:
        write_manifest(manifest_file, fns)

    tasks: list[Task] = [schema_task, manifest_task, *extra_tasks]
    first_error: BaseException | None = None
    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = [pool.submit(task, functions) for task in tasks]
        for future in as_completed(futures):
            error = future.exception()
            if error is None:
                continue
            log.error("generation task failed: %s", error)
            if first_error is None:
                first_error = error
    if first_error is not None:
        raise first_error

    return Outputs(proto=proto_file, manifest=manifest_file, emitted=emitted)
