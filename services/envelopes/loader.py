"""
Template Loader

Loads, validates, and caches signing template definitions from YAML
files, and reads the template PDFs they point to.
Validates all templates on startup and fails fast if any are invalid.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional, Set

import yaml

from .exceptions import ConfigurationError, ValidationError
from .transforms import TRANSFORMS
from .types import TabKind, TemplateDefinition

logger = logging.getLogger(__name__)

# Paths
DOCUMENTS_DIR = Path(__file__).parent.parent.parent / 'documents'

DEFAULT_TEMPLATE_SLUG = 'purchase-new-device'

# Roots an anchor source path may start from
SOURCE_ROOTS = ('selection', 'prices')

SOURCE_PATTERN = re.compile(r'^[a-z_]+(\.[a-z_]+)+$')


class TemplateLoader:
    """
    Singleton loader for template definitions.

    Loads all YAML files from the documents/ directory on startup,
    validates them, and caches them for fast lookup during request
    handling.

    Usage:
        # On app startup
        TemplateLoader.load_all()

        # During request handling
        definition = TemplateLoader.get('purchase-new-device')
        pdf_bytes = TemplateLoader.read_document(definition)
    """

    _definitions: Dict[str, TemplateDefinition] = {}
    _directory: Path = DOCUMENTS_DIR
    _validated: bool = False

    @classmethod
    def load_all(cls, directory: Optional[Path] = None) -> None:
        """
        Load and validate all template definitions.

        Called at app startup. If any template fails validation,
        raises ConfigurationError with all errors listed.
        """
        cls._definitions.clear()
        cls._validated = False
        cls._directory = Path(directory) if directory else DOCUMENTS_DIR
        errors = []

        if not cls._directory.exists():
            raise ConfigurationError(f"Documents directory not found: {cls._directory}")

        yaml_files = sorted(cls._directory.glob('*.yml')) + sorted(cls._directory.glob('*.yaml'))

        if not yaml_files:
            logger.warning(f"No template definitions found in {cls._directory}")

        for yaml_file in yaml_files:
            try:
                definition = cls._load_and_validate(yaml_file)

                if definition.slug in cls._definitions:
                    errors.append(
                        f"{yaml_file.name}: Duplicate slug '{definition.slug}' "
                        f"(already defined in another file)"
                    )
                    continue

                cls._definitions[definition.slug] = definition
                logger.debug(f"Loaded template definition: {definition.slug}")

            except (ValidationError, yaml.YAMLError) as e:
                errors.append(f"{yaml_file.name}: {e}")
            except (KeyError, TypeError, ValueError) as e:
                errors.append(f"{yaml_file.name}: Malformed definition - {e}")

        if errors:
            error_msg = "Template configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            logger.error(error_msg)
            raise ConfigurationError(error_msg)

        cls._validated = True
        logger.info(f"Loaded {len(cls._definitions)} template definition(s)")

    @classmethod
    def _load_and_validate(cls, path: Path) -> TemplateDefinition:
        """Load a YAML file and validate it."""
        raw = yaml.safe_load(path.read_text())

        if not raw:
            raise ValidationError("Empty template definition")
        if not isinstance(raw, dict):
            raise ValidationError("Template definition must be a mapping")

        cls._validate_structure(raw)
        cls._validate_tabs(raw)
        cls._validate_anchors(raw)

        return TemplateDefinition.from_dict(raw)

    @classmethod
    def _validate_structure(cls, raw: dict) -> None:
        """Check the top-level keys every template needs."""
        for key in ('schema_version', 'slug', 'email_subject', 'document'):
            if not raw.get(key):
                raise ValidationError(f"Missing required key '{key}'", field=key)

        document = raw['document']
        if not isinstance(document, dict):
            raise ValidationError("'document' must be a mapping", field='document')
        for key in ('name', 'file'):
            if not document.get(key):
                raise ValidationError(f"Missing required key 'document.{key}'", field=key)

    @classmethod
    def _validate_tabs(cls, raw: dict) -> None:
        """Validate signature marks."""
        kinds = {k.value for k in TabKind}

        for tab in raw.get('tabs', []):
            if tab.get('kind') not in kinds:
                raise ValidationError(
                    f"Tab '{tab.get('anchor')}' has unknown kind '{tab.get('kind')}'. "
                    f"Available kinds: {sorted(kinds)}"
                )
            if not tab.get('anchor'):
                raise ValidationError(f"Tab of kind '{tab['kind']}' is missing its anchor")

    @classmethod
    def _validate_anchors(cls, raw: dict) -> None:
        """Validate text anchors and their value sources."""
        anchors = raw.get('anchors', [])

        field_keys = [a.get('field_key') for a in anchors]
        if len(field_keys) != len(set(field_keys)):
            duplicates = {k for k in field_keys if field_keys.count(k) > 1}
            raise ValidationError(f"Duplicate field_keys: {duplicates}")

        tokens = [a.get('anchor') for a in anchors] + [t.get('anchor') for t in raw.get('tabs', [])]
        if len(tokens) != len(set(tokens)):
            duplicates = {t for t in tokens if tokens.count(t) > 1}
            raise ValidationError(f"Duplicate anchor tokens: {duplicates}")

        for anchor in anchors:
            field_key = anchor.get('field_key') or 'unknown'

            if not anchor.get('field_key') or not anchor.get('anchor'):
                raise ValidationError(
                    f"Anchor '{field_key}' needs both 'field_key' and 'anchor'",
                    field=field_key
                )

            has_source = 'source' in anchor
            has_value = 'value' in anchor
            is_manual = bool(anchor.get('manual'))
            if [has_source, has_value, is_manual].count(True) != 1:
                raise ValidationError(
                    f"Anchor '{field_key}' must have exactly one of 'source', 'value' or 'manual'",
                    field=field_key
                )

            for path_key in ('source', 'condition_field'):
                path = anchor.get(path_key)
                if path is not None and not cls._is_valid_source(path):
                    raise ValidationError(
                        f"Anchor '{field_key}' has invalid {path_key}: '{path}'. "
                        f"Paths start with one of {list(SOURCE_ROOTS)} (e.g. 'prices.device_price')",
                        field=field_key
                    )

            if 'condition_field' in anchor and 'condition_equals' not in anchor:
                raise ValidationError(
                    f"Anchor '{field_key}' has 'condition_field' but missing 'condition_equals'",
                    field=field_key
                )

            transform = anchor.get('transform')
            if transform and transform not in TRANSFORMS:
                raise ValidationError(
                    f"Anchor '{field_key}' uses unknown transform '{transform}'",
                    field=field_key
                )

            template = anchor.get('template')
            if template is not None and '{value}' not in template:
                raise ValidationError(
                    f"Anchor '{field_key}' template must contain '{{value}}'",
                    field=field_key
                )

    @classmethod
    def _is_valid_source(cls, path: str) -> bool:
        if not isinstance(path, str) or not SOURCE_PATTERN.match(path):
            return False
        return path.split('.')[0] in SOURCE_ROOTS

    @classmethod
    def get(cls, slug: str) -> Optional[TemplateDefinition]:
        """
        Get a template definition by slug.

        Returns None if not found.
        """
        return cls._definitions.get(slug)

    @classmethod
    def get_or_raise(cls, slug: str) -> TemplateDefinition:
        """
        Get a template definition by slug, raising if not found.
        """
        definition = cls.get(slug)
        if not definition:
            raise ConfigurationError(f"Unknown template slug: {slug}")
        return definition

    @classmethod
    def get_default(cls) -> TemplateDefinition:
        """Get the purchase template, loading definitions on first use."""
        if not cls._validated:
            cls.load_all()
        return cls.get_or_raise(DEFAULT_TEMPLATE_SLUG)

    @classmethod
    def read_document(cls, definition: TemplateDefinition) -> bytes:
        """
        Read the template's PDF bytes from the documents directory.

        Raises:
            ConfigurationError: The file does not exist
        """
        path = cls._directory / definition.file
        if not path.is_file():
            raise ConfigurationError(f"Template file not found: {path}")
        return path.read_bytes()

    @classmethod
    def all_slugs(cls) -> Set[str]:
        """Get all loaded template slugs."""
        return set(cls._definitions.keys())

    @classmethod
    def is_loaded(cls) -> bool:
        """Check if templates have been loaded and validated."""
        return cls._validated

    @classmethod
    def clear(cls) -> None:
        """Clear all cached definitions. Mainly for testing."""
        cls._definitions.clear()
        cls._directory = DOCUMENTS_DIR
        cls._validated = False

    @classmethod
    def reload(cls) -> None:
        """Reload all template definitions from the same directory."""
        directory = cls._directory
        cls.clear()
        try:
            cls.load_all(directory)
        except ConfigurationError as e:
            logger.error(f"Failed to reload templates: {e}")
            raise
