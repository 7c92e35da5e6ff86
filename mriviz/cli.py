"""Interactive-style viewer for BraTS volumes, driven from the command line."""

from __future__ import annotations

import argparse
import sys
from os import PathLike
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np
from PIL import Image

from mriviz.datasets import BratsPaths, default_catalog
from mriviz.effects import Effect, apply_effect
from mriviz.imageops import gray_to_bgr
from mriviz.nifti import NiftiError
from mriviz.statistics import StatisticsError, masked_values, write_values_csv
from mriviz.volume import Volumetrics

VIDEO_NAME = "output_video.gif"
VALUES_NAME = "valores.csv"
FRAME_DURATION_MS = 100


class ViewerError(Exception):
    """Raised when a viewer action cannot be carried out."""


def _to_pil(image: np.ndarray) -> Image.Image:
    arr = np.ascontiguousarray(image, dtype=np.uint8)
    if arr.ndim == 3:
        arr = np.ascontiguousarray(arr[..., ::-1])
    return Image.fromarray(arr)


class Viewer:
    """Loads a case, walks its slices and renders the selected effect."""

    def __init__(
        self,
        catalog: Mapping[str, BratsPaths],
        output_folder: str | PathLike | None = "output",
    ) -> None:
        self.catalog = dict(catalog)
        self.output_folder = Path(output_folder) if output_folder else None
        self.volumetrics = Volumetrics()
        self.highlight = False
        self.current_slice: np.ndarray | None = None
        self.current_mask: np.ndarray | None = None
        self.processed: np.ndarray | None = None

    def _render(self) -> np.ndarray | None:
        vol = self.volumetrics
        base = vol.process_slice() if self.highlight else vol.slice
        return apply_effect(vol, base, vol.effect_name)

    def _extract(self) -> None:
        try:
            self.volumetrics.extract_slice()
            self.volumetrics.extract_mask_slice()
        except (IndexError, RuntimeError) as exc:
            raise ViewerError(str(exc)) from exc

    def load_case(self, case_id: str) -> int:
        """Load the FLAIR volume and mask of ``case_id``; return the depth."""
        paths = self.catalog.get(case_id)
        if paths is None:
            raise ViewerError(f"invalid option: {case_id}")
        vol = self.volumetrics
        try:
            vol.load(paths.flair, "flair")
        except NiftiError as exc:
            raise ViewerError(f"error loading FLAIR: {paths.flair}") from exc
        try:
            vol.load(paths.mask, "mask")
        except NiftiError as exc:
            raise ViewerError(f"error loading MASK: {paths.mask}") from exc
        depth = vol.depth
        if depth == 0:
            raise ViewerError("volume has no depth (depth = 0)")
        vol.slice_index = 0
        self._extract()
        self.current_slice = vol.slice
        self.current_mask = vol.mask_slice
        self.processed = None
        return depth

    def select_slice(self, index: int) -> np.ndarray | None:
        """Move to slice ``index`` and return the rendered image."""
        vol = self.volumetrics
        vol.slice_index = int(index)
        self._extract()
        self.current_slice = vol.slice
        self.current_mask = vol.mask_slice
        self.processed = self._render()
        return self.processed

    def set_effect(self, effect_name: str | Effect) -> np.ndarray | None:
        """Select an effect; returns the rendered image, or None without a slice."""
        if self.current_slice is None or self.current_mask is None:
            return None
        name = effect_name.value if isinstance(effect_name, Effect) else str(effect_name)
        self.volumetrics.effect_name = name
        self.processed = self._render()
        return self.processed

    def set_highlight(self, enabled: bool) -> np.ndarray | None:
        """Toggle red highlighting of the masked region."""
        self.highlight = bool(enabled)
        if self.processed is not None:
            self.processed = self._render()
        return self.processed

    def _require_output(self) -> Path:
        if self.output_folder is None:
            raise ViewerError("no output folder selected")
        self.output_folder.mkdir(parents=True, exist_ok=True)
        return self.output_folder

    def save_image(self) -> tuple[Path, Path | None]:
        """Save the shown image as PNG and the masked values as CSV.

        Returns the image path and the CSV path, the latter ``None`` when no
        statistics could be gathered.
        """
        if self.current_slice is None:
            raise ViewerError("no slice to save")
        folder = self._require_output()
        if self.highlight and self.processed is not None:
            to_save = self.processed
        else:
            to_save = self.current_slice
        image_path = folder / f"slice_{self.volumetrics.slice_index}_0.png"
        try:
            _to_pil(to_save).save(image_path)
        except OSError as exc:
            raise ViewerError(f"error saving image to {image_path}") from exc
        mask = self.volumetrics.mask_slice
        if mask is None:
            return image_path, None
        try:
            values = masked_values(to_save, mask)
            csv_path = write_values_csv(values, folder / "tmp" / VALUES_NAME)
        except StatisticsError:
            return image_path, None
        return image_path, csv_path

    def generate_video(self, count: int) -> Path:
        """Write an animation of about ``count`` slices around the current one."""
        if self.current_slice is None:
            raise ViewerError("no volume loaded to generate video")
        folder = self._require_output()
        vol = self.volumetrics
        depth = vol.depth
        if depth == 0:
            raise ViewerError("volume has no depth (depth = 0)")
        half = int(int(count) / 2)
        current = vol.slice_index
        begin = max(current - half, 0)
        end = min(current + half, depth)

        vol.slice_index = begin
        self._extract()
        first = self._render()
        if first is None or np.asarray(first).size == 0:
            raise ViewerError("could not obtain the first slice for the video")
        first = np.asarray(first)
        first_color = gray_to_bgr(first) if first.ndim == 2 else first
        height, width = first_color.shape[:2]

        frames: list[Image.Image] = []
        for index in range(begin, end + 1):
            if index >= depth:
                continue
            vol.slice_index = index
            self._extract()
            out = self._render()
            if out is None or np.asarray(out).size == 0:
                continue
            out = np.asarray(out)
            color = gray_to_bgr(out) if out.ndim == 2 else out
            frame = _to_pil(color)
            if color.shape[:2] != (height, width):
                frame = frame.resize((width, height))
            frames.append(frame)

        video_path = folder / VIDEO_NAME
        if not frames:
            raise ViewerError(f"could not create video file: {video_path}")
        try:
            frames[0].save(
                video_path,
                save_all=True,
                append_images=frames[1:],
                duration=FRAME_DURATION_MS,
                loop=0,
            )
        except OSError as exc:
            raise ViewerError(f"could not create video file: {video_path}") from exc
        return video_path


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mriviz", description="View BraTS slices and effects.")
    parser.add_argument("case", help="case to load, e.g. brats0")
    parser.add_argument("--root", required=True, help="dataset root folder")
    parser.add_argument("--slice", type=int, default=0, help="slice index")
    parser.add_argument(
        "--effect",
        default="",
        choices=[""] + [effect.value for effect in Effect],
        help="effect to apply",
    )
    parser.add_argument("--highlight", action="store_true", help="tint the masked region red")
    parser.add_argument("--output", default="output", help="output folder")
    parser.add_argument("--save", action="store_true", help="save the shown slice")
    parser.add_argument("--video", type=int, metavar="N", help="write an animation of N slices")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the viewer once for the given arguments; return an exit status."""
    args = _parser().parse_args(argv)
    viewer = Viewer(default_catalog(args.root), args.output)
    try:
        depth = viewer.load_case(args.case)
        print(f"Volume loaded: {depth} slices.")
        viewer.set_highlight(args.highlight)
        viewer.set_effect(args.effect)
        viewer.select_slice(args.slice)
        if args.save:
            image_path, csv_path = viewer.save_image()
            print(f"Image saved: {image_path}")
            if csv_path is not None:
                print(f"Masked values written to {csv_path}")
        if args.video is not None:
            video_path = viewer.generate_video(args.video)
            print(f"Video generated at {video_path}")
    except ViewerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())