"""Route spec loader -- find, read and structurally validate spec documents.

Typical usage::

    from apibuilder.parser import list_spec_files, load_route_spec

    for path in list_spec_files(config.specs_path, config.spec_extensions):
        spec = load_route_spec(path)

Sub-modules:

* :mod:`~apibuilder.parser.loader` -- Directory scanning, JSON/YAML
  parsing and conversion into :class:`~apibuilder.models.RouteSpec`.
"""

from apibuilder.parser.loader import list_spec_files, load_route_spec, parse_route_spec

__all__ = ["list_spec_files", "load_route_spec", "parse_route_spec"]
