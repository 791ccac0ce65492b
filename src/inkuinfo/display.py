from __future__ import annotations
from pathlib import Path
from PIL import Image

from .config import DisplayConfig


def show_on_inky(img: Image.Image, border: str = "white") -> None:
    """
    Displays a PIL image on an Inky e-ink panel.
    Assumes the 'inky' library is installed and hardware is connected.
    """
    from inky.auto import auto  # type: ignore

    disp = auto(ask_user=False, verbose=False)
    if disp is None:
        raise RuntimeError("Could not auto-detect Inky display. Check wiring and SPI enabled.")

    disp.set_border(border)
    disp.set_image(img)
    disp.show()


def save_png(img: Image.Image, path: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    img.save(p, format="PNG")


def output_image(img: Image.Image, cfg: DisplayConfig) -> None:
    if cfg.rotate_degrees:
        img = img.rotate(cfg.rotate_degrees, expand=True)
    if cfg.output == "inky":
        show_on_inky(img, border=cfg.border)
    else:
        save_png(img, cfg.output_path)
