# launcher.py: frozen-build entrypoint; records why Cue POS failed to boot

import datetime
import os
import sys
import traceback
from pathlib import Path

# Qt must fall back to software rendering on the venue's till PCs
os.environ.setdefault("QT_OPENGL", "software")
if sys.platform.startswith("win"):
    os.environ.setdefault("QT_QPA_PLATFORM", "windows")
os.environ.setdefault("QT_SCALE_FACTOR_ROUNDING_POLICY", "PassThrough")

_ENV_PREFIXES = ("QT_", "CUE_POS_")


def _crash_dir() -> Path:
    """Crash logs sit next to the app log; the working directory is the last resort."""
    try:
        from cue_pos.core import paths

        paths.LOG_DIR.mkdir(parents=True, exist_ok=True)
        return paths.LOG_DIR
    except OSError:
        return Path.cwd()


def _settings_summary() -> str:
    try:
        from cue_pos.core.config_store import load_config

        cfg = load_config()
    except (OSError, ValueError) as exc:
        return f"settings unreadable: {exc}"
    return f"store_backend={cfg.get('store_backend')} remote_url={cfg.get('remote_url') or '-'}"


def _write_crash(stage: str, exc: BaseException | None = None) -> Path | None:
    ts = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    target = _crash_dir() / f"CuePOS-crash-{stage}-{ts}.log"
    try:
        with open(target, "w", encoding="utf-8") as f:
            f.write(f"[{ts}] stage: {stage}\n")
            f.write(f"python: {sys.version.split()[0]} frozen: {getattr(sys, 'frozen', False)}\n")
            f.write(f"argv: {sys.argv}\n")
            if stage != "pre-qt":
                f.write(f"{_settings_summary()}\n")
            for key in sorted(os.environ):
                if key.startswith(_ENV_PREFIXES):
                    f.write(f"{key}={os.environ[key]}\n")
            if exc is not None:
                f.write("\n--- TRACEBACK ---\n")
                f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        return None
    return target


try:
    from PyQt6.QtCore import QCoreApplication, Qt
    # must be set BEFORE QApplication is created
    QCoreApplication.setAttribute(Qt.ApplicationAttribute.AA_UseSoftwareOpenGL, True)
except Exception as e:
    _write_crash("pre-qt", e)
    raise

try:
    from cue_pos.app import main
except Exception as e:
    _write_crash("import-app", e)
    raise

if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        _write_crash("runtime", e)
        raise
