from fatcat_cli.application.services.specifier_resolver import SpecifierResolver

__all__ = [
    "SpecifierResolver",
]
