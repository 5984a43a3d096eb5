"""Tests for schema entity extraction."""

import pytest

from devlens.errors import InvalidInput
from devlens.models import EntityField, Relation
from devlens.schema import dialect_for_filename, extract_entities, parse_django, parse_prisma

PRISMA_GOLDEN = "model User { id Int @id \n posts Post[] } \n model Post { id Int @id \n author User }"

PRISMA_SCHEMA = """
datasource db {
  provider = "postgresql"
  url      = env("DATABASE_URL")
}

enum Role {
  USER
  ADMIN
}

model Account {
  id        String   @id @default(cuid())
  email     String   @unique
  role      Role     @default(USER)
  nickname  String?
  tags      String[]
  // a comment line
  profile   Profile?
  posts     Post[]   @relation("AuthorPosts")

  @@index([email])
  @@unique([email, role])
}

model Post {
  id        Int      @id @default(autoincrement())
  authorId  String
  author    Account  @relation("AuthorPosts", fields: [authorId], references: [id])
  createdAt DateTime @default(now())
}
"""

DJANGO_MODELS = '''
from django.db import models


class Author(models.Model):
    name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    uuid = models.UUIDField(primary_key=True)


class Helper:
    value = models.CharField(max_length=5)


class Book(models.Model):
    title = models.CharField(max_length=200)
    author = models.ForeignKey('Author', on_delete=models.CASCADE, related_name='books')
    tags = models.ManyToManyField(Tag)
    cover = models.OneToOneField(to="Cover", on_delete=models.CASCADE)
    parent = models.ForeignKey('self', null=True, on_delete=models.SET_NULL)
    editor = models.ForeignKey(
        'Editor', on_delete=models.CASCADE)

    class Meta:
        indexes = [models.Index(fields=['title'])]
        unique_together = ('title', 'author')
'''


def test_block_dsl_golden_sample():
    """The two-model sample yields exactly the expected entities."""
    entities = extract_entities(PRISMA_GOLDEN, "block-dsl")

    assert [e.name for e in entities] == ["User", "Post"]
    user, post = entities

    assert len(user.fields) == 1
    assert user.fields[0].name == "id"
    assert user.fields[0].is_primary_key is True
    assert user.relations == [Relation(target="Post", cardinality="one-to-many")]

    assert len(post.fields) == 1
    assert post.relations == [Relation(target="User", cardinality="one-to-one")]


def test_block_dsl_fields_and_flags():
    """Scalars, arrays, optionals, enums and unique markers are classified."""
    account = parse_prisma(PRISMA_SCHEMA)[0]

    assert account.field_names() == ["id", "email", "role", "nickname", "tags"]
    fields = {f.name: f for f in account.fields}
    assert fields["id"].is_primary_key and not fields["id"].is_unique
    assert fields["email"].is_unique
    assert fields["role"].type == "Role"
    assert fields["nickname"].is_optional
    assert fields["tags"].type == "String[]"


def test_block_dsl_relations_and_indexes():
    """Relation names, directive lines and foreign keys are captured."""
    account, post = parse_prisma(PRISMA_SCHEMA)

    assert account.relations == [
        Relation(target="Profile", cardinality="one-to-one"),
        Relation(target="Post", cardinality="one-to-many", name="AuthorPosts"),
    ]
    assert account.indexes == ["@@index([email])", "@@unique([email, role])"]

    assert post.relations == [Relation(target="Account", cardinality="one-to-one", name="AuthorPosts")]
    author_id = post.fields[1]
    assert author_id == EntityField(name="authorId", type="String", is_foreign_key=True, related_to="Account")
    assert post.fields[2].type == "DateTime"


def test_block_dsl_ignores_non_model_blocks():
    """Datasource and enum blocks do not become entities."""
    assert [e.name for e in parse_prisma(PRISMA_SCHEMA)] == ["Account", "Post"]


def test_class_dsl_golden_sample():
    """A single CharField model yields one field and no relations."""
    entities = extract_entities("class Author(models.Model):\n    name = models.CharField(max_length=100)", "class-dsl")

    assert len(entities) == 1
    assert entities[0].name == "Author"
    assert entities[0].fields == [EntityField(name="name", type="CharField")]
    assert entities[0].relations == []


def test_class_dsl_models():
    """Only models.Model subclasses are extracted, with flags and relations."""
    author, book = parse_django(DJANGO_MODELS)

    assert author.name == "Author"
    fields = {f.name: f for f in author.fields}
    assert fields["email"].is_unique and fields["email"].type == "EmailField"
    assert fields["uuid"].is_primary_key

    assert book.name == "Book"
    assert book.field_names() == ["title"]
    assert book.relations == [
        Relation(target="Author", cardinality="one-to-many", name="books"),
        Relation(target="Tag", cardinality="many-to-many"),
        Relation(target="Cover", cardinality="one-to-one"),
        Relation(target="Book", cardinality="one-to-many"),
    ]
    assert book.indexes == [
        "indexes = [models.Index(fields=['title'])]",
        "unique_together = ('title', 'author')",
    ]


def test_entities_keep_declaration_order():
    """Entities come out in the order the text declares them."""
    text = "model B {\n id Int @id\n}\nmodel A {\n id Int @id\n}\n"
    assert [e.name for e in parse_prisma(text)] == ["B", "A"]


@pytest.mark.parametrize("dialect", ["block-dsl", "class-dsl"])
@pytest.mark.parametrize("text", ["", "\x00\x01\x02\xff garbage {{{ }}", "model {", "class (models.Model):"])
def test_no_match_is_empty(dialect, text):
    """Unrecognized text never raises, it just yields nothing."""
    assert extract_entities(text, dialect) == []


def test_invalid_input():
    """Null, non-text and unknown dialects are rejected."""
    with pytest.raises(InvalidInput) as excinfo:
        extract_entities(None, "block-dsl")
    assert excinfo.value.component == "schema"

    with pytest.raises(InvalidInput):
        extract_entities(b"model A {}", "block-dsl")
    with pytest.raises(InvalidInput):
        extract_entities("", "sql")


def test_dialect_for_filename():
    """Dialect selection is by exact filename."""
    assert dialect_for_filename("schema.prisma") == "block-dsl"
    assert dialect_for_filename("models.py") == "class-dsl"
    assert dialect_for_filename("my_models.py") is None
    assert dialect_for_filename("schema.sql", {"schema.sql": "block-dsl"}) == "block-dsl"
