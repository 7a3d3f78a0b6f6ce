import json
import logging
from gettext import gettext as _
from pathlib import Path

logger = logging.getLogger(__name__)

COMMAND_DESCRIPTION = _("Count microgels and cells in a saved detection batch")


def load_batch(subparser, path: Path) -> dict:
    """Read a detection-service batch (JSON) or exit with a usage error."""
    if not path.is_file():
        subparser.error(_("Input file does not exist: {path}").format(path=path))
    try:
        with path.open("r") as f:
            batch = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        subparser.error(
            _("Could not read detection batch {path}: {error}").format(
                path=path, error=e
            )
        )
    if not isinstance(batch, dict):
        subparser.error(_("Detection batch must be a JSON object: {path}").format(path=path))
    logger.debug(f"Loaded {len(batch.get('images') or [])} image(s) from {path}")
    return batch


def command(subparser):
    subparser.add_argument(
        "input", type=Path, help=_("JSON file with classMap and images")
    )
    subparser.add_argument(
        "--overlap-iou",
        dest="overlap_iou",
        type=float,
        default=None,
        help=_("Exclude microgels overlapping another one at or above this IoU"),
    )
    subparser.add_argument(
        "--edge-outside-percent",
        dest="edge_outside_percent",
        type=float,
        default=None,
        help=_("Exclude microgels with more than this %% of area outside the image"),
    )
    subparser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help=_("Print the report payload as JSON"),
    )

    def handle(args):
        from microgel_annotator.core.annotation import ImageSessionStore
        from microgel_annotator.utils.config import load_config

        batch = load_batch(args.subparser, args.input)

        store = ImageSessionStore(config=load_config())
        store.set_rules(
            overlap_iou=args.overlap_iou,
            edge_outside_percent=args.edge_outside_percent,
        )
        with store.detecting():
            store.import_detections(batch)

        if args.as_json:
            print(json.dumps(store.report_payload_all(), indent=2))
            return

        for image in store.images:
            counts = ", ".join(f"{k}: {v}" for k, v in image.counts.items())
            print(f"{image.filename}\t{image.width}x{image.height}\t{counts}")
        totals = ", ".join(f"{k}: {v}" for k, v in store.totals().items())
        print(_("Total ({n} images): {totals}").format(n=len(store), totals=totals))

    return handle
