"""Router settings.

RouterSettings is a frozen dataclass: immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterSettings:
    """Behavioral switches for a built router. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        settings = RouterSettings(debug=True, strict_slashes=True)
    """

    # Include the error text in the default 500 body
    debug: bool = False

    # Answer OPTIONS for registered paths without an explicit OPTIONS route
    auto_options: bool = True

    # When False, "/users" and "/users/" match the same route
    strict_slashes: bool = False

    # Body of the default 404 response
    not_found_body: str = "Not Found"
