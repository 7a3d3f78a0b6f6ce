from gettext import gettext as _
from pathlib import Path

COMMAND_DESCRIPTION = _("Show which classes act as microgel and cell")


def command(subparser):
    subparser.add_argument(
        "input", type=Path, help=_("JSON file with classMap and images")
    )

    def handle(args):
        from microgel_annotator.cli.count import load_batch
        from microgel_annotator.core.annotation import ClassMap

        batch = load_batch(args.subparser, args.input)
        class_map = ClassMap(batch.get("classMap") or {})
        roles = class_map.roles()

        for class_id, name in class_map.items():
            print(f"{class_id}\t{name}")
        print(
            _("microgel -> {container}, cell -> {contained}").format(
                container=roles.container, contained=roles.contained
            )
        )

    return handle
