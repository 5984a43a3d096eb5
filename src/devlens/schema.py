"""Best-effort extraction of data-model entities from ORM schema files.

Two dialects are understood:

* ``block-dsl``: Prisma-style ``model Name { ... }`` blocks.
* ``class-dsl``: Django-style ``class Name(models.Model):`` declarations.

Neither is parsed with a grammar. Lines that do not look like a field are
skipped, so malformed input degrades to fewer entities instead of an error.
"""

import logging
import re
from typing import Dict, List, Optional

from .errors import InvalidInput
from .models import MANY_TO_MANY, ONE_TO_MANY, ONE_TO_ONE, Entity, EntityField, Relation

logger = logging.getLogger(__name__)

BLOCK_DSL = "block-dsl"
CLASS_DSL = "class-dsl"
DIALECTS = (BLOCK_DSL, CLASS_DSL)

# Prisma scalar types, in Prisma's own casing
PRISMA_SCALARS = frozenset({
    "String", "Int", "Boolean", "DateTime", "Float", "Json", "Decimal", "BigInt", "Bytes",
})

DJANGO_RELATIONS = {
    "ForeignKey": ONE_TO_MANY,
    "OneToOneField": ONE_TO_ONE,
    "ManyToManyField": MANY_TO_MANY,
}

_PRISMA_MODEL = re.compile(r'^\s*model\s+(\w+)\s*\{(.*?)\}', re.MULTILINE | re.DOTALL)
_PRISMA_ENUM = re.compile(r'^\s*enum\s+(\w+)\s*\{', re.MULTILINE)
_PRISMA_FIELD = re.compile(r'^\s*(\w+)\s+(\w+)(\[\])?(\?)?(?:\s+(.*))?$')
_PRISMA_RELATION_NAME = re.compile(r'@relation\(\s*(?:name\s*:\s*)?"([^"]*)"')
_PRISMA_RELATION_FIELDS = re.compile(r'@relation\([^)]*fields\s*:\s*\[([^\]]*)\]')

_DJANGO_CLASS = re.compile(r'^class\s+(\w+)\s*\(([^)]*)\)\s*:')
_DJANGO_FIELD = re.compile(r'^\s*(\w+)\s*=\s*models\.(\w+)\((.*)$')
_DJANGO_RELATED_NAME = re.compile(r'related_name\s*=\s*[\'"]([^\'"]+)[\'"]')
_DJANGO_MODEL_BASE = re.compile(r'\bmodels\.Model\b')


def dialect_for_filename(filename: str, model_files: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Return the dialect for a recognized model filename, or None."""
    if model_files is None:
        from .config import GlobalConfig
        model_files = GlobalConfig().model_files
    return model_files.get(filename)


def _check_text(source_text: object):
    if source_text is None:
        raise InvalidInput("schema", "no source text")
    if not isinstance(source_text, str):
        raise InvalidInput("schema", f"expected text, got {type(source_text).__name__}")


def parse_prisma(content: str) -> List[Entity]:
    """Extract entities from Prisma ``model`` blocks."""
    _check_text(content)
    enums = set(_PRISMA_ENUM.findall(content))
    entities = []

    for match in _PRISMA_MODEL.finditer(content):
        entity = Entity(name=match.group(1))
        foreign_keys: Dict[str, str] = {}

        for line in match.group(2).split('\n'):
            stripped = line.strip()
            if stripped.startswith('@@'):
                entity.indexes.append(stripped)
                continue

            field_match = _PRISMA_FIELD.match(line)
            if not field_match:
                continue

            name, type_name, array, optional, decorators = field_match.groups()
            decorators = decorators or ""

            if type_name[0].isupper() and type_name not in PRISMA_SCALARS and type_name not in enums:
                relation_name = _PRISMA_RELATION_NAME.search(decorators)
                entity.relations.append(Relation(
                    target=type_name,
                    cardinality=ONE_TO_MANY if array else ONE_TO_ONE,
                    name=relation_name.group(1) if relation_name else None,
                ))
                fields_match = _PRISMA_RELATION_FIELDS.search(decorators)
                if fields_match:
                    for key in fields_match.group(1).split(','):
                        if key.strip():
                            foreign_keys[key.strip()] = type_name
            else:
                entity.fields.append(EntityField(
                    name=name,
                    type=type_name + ('[]' if array else ''),
                    is_primary_key='@id' in decorators,
                    is_unique='@unique' in decorators,
                    is_optional=bool(optional),
                ))

        # Relations may be declared after the scalars they reference
        for entity_field in entity.fields:
            if entity_field.name in foreign_keys:
                entity_field.is_foreign_key = True
                entity_field.related_to = foreign_keys[entity_field.name]

        entities.append(entity)

    return entities


def _first_argument(args: str) -> Optional[str]:
    first = args.split(',', 1)[0].strip().rstrip(')').strip()
    if first.startswith('to='):
        first = first[3:].strip()
    first = first.strip('\'"')
    if not first or '=' in first:
        return None
    return first


def _split_classes(content: str) -> List[List[str]]:
    """Split text into chunks that each start at a top-level ``class`` line."""
    chunks: List[List[str]] = []
    for line in content.split('\n'):
        if line.startswith(('class ', 'class\t')):
            chunks.append([line])
        elif chunks:
            chunks[-1].append(line)
    return chunks


def parse_django(content: str) -> List[Entity]:
    """Extract entities from Django ``models.Model`` subclasses."""
    _check_text(content)
    entities = []

    for chunk in _split_classes(content):
        header = _DJANGO_CLASS.match(chunk[0])
        if not header or not _DJANGO_MODEL_BASE.search(header.group(2)):
            continue

        entity = Entity(name=header.group(1))
        for line in chunk[1:]:
            if 'indexes =' in line or 'unique_together =' in line:
                entity.indexes.append(line.strip())
                continue

            field_match = _DJANGO_FIELD.match(line)
            if not field_match:
                continue

            name, field_type, args = field_match.groups()
            cardinality = DJANGO_RELATIONS.get(field_type)
            if cardinality is not None:
                target = _first_argument(args)
                if target is None:
                    logger.debug(f"No target for {entity.name}.{name}, skipping")
                    continue
                if target == 'self':
                    target = entity.name
                related_name = _DJANGO_RELATED_NAME.search(args)
                entity.relations.append(Relation(
                    target=target,
                    cardinality=cardinality,
                    name=related_name.group(1) if related_name else None,
                ))
            else:
                entity.fields.append(EntityField(
                    name=name,
                    type=field_type,
                    is_primary_key='primary_key=True' in args,
                    is_unique='unique=True' in args,
                ))

        entities.append(entity)

    return entities


def extract_entities(source_text: str, dialect: str) -> List[Entity]:
    """Extract entities from schema text in the given dialect."""
    _check_text(source_text)
    if dialect == BLOCK_DSL:
        return parse_prisma(source_text)
    if dialect == CLASS_DSL:
        return parse_django(source_text)
    raise InvalidInput("schema", f"unknown dialect {dialect!r}")
