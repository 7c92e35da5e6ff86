# mriviz

Browse BraTS-style brain MRI volumes slice by slice, tint the segmented
tumour region red, apply classic image-processing effects and export the
result as a PNG image or an animated GIF of neighbouring slices.

mriviz reads NIfTI-1 volumes (`.nii` and `.nii.gz`) with NumPy, SciPy and
Pillow only.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## The command

Installing the package provides the `mriviz` command. Each run loads one
case, renders one slice and optionally saves output:

```
mriviz --help
mriviz brats0 --root /data/brats --slice 80 --effect Canny --save
mriviz brats2 --root /data/brats --slice 70 --highlight --video 20
```

- `case` (positional): one of `brats0`, `brats2`, `brats3`.
- `--root`: dataset folder holding the `BraTS2021_XXXXX` case folders (required).
- `--slice`: axial slice index (default 0).
- `--effect`: one of the effect names listed below (default: none).
- `--highlight`: tint the masked region red before applying the effect.
- `--output`: output folder (default `output`), created if missing.
- `--save`: write the shown slice to `<output>/slice_<index>_0.png` and the
  grey values under the mask to `<output>/tmp/valores.csv`.
- `--video N`: write `<output>/output_video.gif`, covering about `N` slices
  centred on the current one, at 100 ms per frame.

The command exits with status 1 and a message on standard error when a case
cannot be loaded or an action fails.

## Using it as a library

### Loading volumes and slices

```python
from mriviz.volume import Volumetrics

vol = Volumetrics()
vol.load("case/flair.nii.gz", "flair")
vol.load("case/seg.nii.gz", "mask")
vol.slice_index = 80

vol.extract_slice()        # current slice, scaled to 0..255
vol.extract_mask_slice()   # matching segmentation slice
highlighted = vol.process_slice()  # BGR image, masked region tinted red
```

`vol.depth` gives the number of slices (0 when nothing is loaded).

Lower-level access is available through `mriviz.nifti`:

```python
from mriviz.nifti import load_nifti, save_nifti

image = load_nifti("case/flair.nii.gz")
plane = image.axial_slice(80)
save_nifti(image, "copy.nii.gz")
```

Unreadable or malformed files raise `NiftiError`; NIfTI-2 files and
header/image file pairs are not supported.

### Effects

`mriviz.effects.apply_effect(volumetrics, image, effect_name)` applies one
of the named effects (members of `Effect`): Ninguno, Threshold,
ContrastStretch, UmbralBinary, BitwiseAND, BitwiseOR, BitwiseXOR, Canny,
Brightness, MeanFilter, GaussianFilter, MedianFilter, BilateralFilter,
Erosion, Dilation, Opening, Closing, HistogramEqualization and Emboss.
`image` defaults to the current slice; `Ninguno` and unknown names return
the image unchanged.

Each effect is also available on its own in `mriviz.imageops`, working on
NumPy `uint8` arrays (grey `H×W` or BGR `H×W×3`): `threshold`,
`contrast_stretch`, `umbral_binary`, `bitwise`, `canny`,
`adjust_brightness`, `mean_filter`, `gaussian_filter`, `median_filter`,
`bilateral_filter`, `erode`, `dilate`, `opening`, `closing`,
`equalize_histogram` and `emboss`, together with the helpers
`gray_to_bgr`, `bgr_to_gray`, `normalize_to_uint8` and `highlight_mask`.

### Dataset layout

`mriviz.datasets` describes where the modalities of a BraTS 2021 case live:

```python
from mriviz.datasets import brats_paths, default_catalog

paths = brats_paths("/data/brats", "00000")
paths.mask            # .../BraTS2021_00000/BraTS2021_00000_seg.nii.gz
catalog = default_catalog("/data/brats")   # cases brats0, brats2, brats3
```

### Statistics

`mriviz.statistics.masked_values(image, mask)` collects the grey levels of
the pixels under a non-zero mask and `write_values_csv(values, path)` stores
them one per line. An empty mask, or one that covers no pixels, raises
`StatisticsError`.

### The viewer object

`mriviz.cli.Viewer` holds the state the command works with:
`load_case`, `select_slice`, `set_effect`, `set_highlight`, `save_image`
and `generate_video`. Failures raise `ViewerError`.

## What mriviz does not do

- There is no graphical window: slices are rendered by the command or by
  library calls and saved to files.
- Saving a slice stores the masked grey values as CSV only; no plots,
  box plots, histograms or text reports are produced from them.
- Animations are written as GIF, not as MP4 or other video formats.