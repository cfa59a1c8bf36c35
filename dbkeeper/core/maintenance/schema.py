"""
Content tables touched by the maintenance operations.

The layout follows the WordPress content model. Table names carry a
configurable prefix, so the tables are built per prefix on a fresh
`MetaData` instead of being declared once at import time.

"""

from typing import NamedTuple
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# BIGINT ids on servers, INTEGER on sqlite to keep the rowid autoincrement
ID_TYPE = BigInteger().with_variant(Integer(), 'sqlite')


class ContentTables(NamedTuple):
    metadata: MetaData
    options: Table
    sitemeta: Table
    posts: Table
    postmeta: Table
    term_taxonomy: Table
    term_relationships: Table


def content_tables(prefix='wp_'):
    """
    Build the content tables for a table prefix.

    ### Args:

    - **prefix** (str): Prefix of all table names, e.g. `wp_`

    ### Returns:

    - **ContentTables**: The tables bound to their own MetaData

    """
    metadata = MetaData()

    options = Table(
        f'{prefix}options',
        metadata,
        Column('option_id', ID_TYPE, primary_key=True, autoincrement=True),
        Column('option_name', String(191), nullable=False, unique=True),
        Column('option_value', Text, nullable=False, default=''),
        Column('autoload', String(20), nullable=False, default='yes'),
        Index(f'{prefix}options_autoload', 'autoload'),
    )

    sitemeta = Table(
        f'{prefix}sitemeta',
        metadata,
        Column('meta_id', ID_TYPE, primary_key=True, autoincrement=True),
        Column('site_id', BigInteger, nullable=False, default=0),
        Column('meta_key', String(255)),
        Column('meta_value', Text),
        Index(f'{prefix}sitemeta_meta_key', 'meta_key'),
    )

    posts = Table(
        f'{prefix}posts',
        metadata,
        Column('ID', ID_TYPE, primary_key=True, autoincrement=True),
        Column('post_author', BigInteger, nullable=False, default=0),
        Column('post_date', DateTime),
        Column('post_date_gmt', DateTime),
        Column('post_title', Text, nullable=False, default=''),
        Column('post_status', String(20), nullable=False, default='publish'),
        Column('post_name', String(200), nullable=False, default=''),
        Column('post_modified', DateTime),
        Column('post_modified_gmt', DateTime),
        Column('post_parent', BigInteger, nullable=False, default=0),
        Column('post_type', String(20), nullable=False, default='post'),
        Index(f'{prefix}posts_type_status_date', 'post_type', 'post_status', 'post_date'),
        Index(f'{prefix}posts_post_parent', 'post_parent'),
    )

    postmeta = Table(
        f'{prefix}postmeta',
        metadata,
        Column('meta_id', ID_TYPE, primary_key=True, autoincrement=True),
        Column('post_id', BigInteger, nullable=False, default=0),
        Column('meta_key', String(255)),
        Column('meta_value', Text),
        Index(f'{prefix}postmeta_post_id', 'post_id'),
    )

    term_taxonomy = Table(
        f'{prefix}term_taxonomy',
        metadata,
        Column('term_taxonomy_id', ID_TYPE, primary_key=True, autoincrement=True),
        Column('term_id', BigInteger, nullable=False, default=0),
        Column('taxonomy', String(32), nullable=False, default=''),
        Column('description', Text, nullable=False, default=''),
        Column('parent', BigInteger, nullable=False, default=0),
        Column('count', BigInteger, nullable=False, default=0),
    )

    term_relationships = Table(
        f'{prefix}term_relationships',
        metadata,
        Column('object_id', BigInteger, primary_key=True, autoincrement=False),
        Column('term_taxonomy_id', BigInteger, primary_key=True, autoincrement=False),
        Column('term_order', Integer, nullable=False, default=0),
    )

    return ContentTables(
        metadata=metadata,
        options=options,
        sitemeta=sitemeta,
        posts=posts,
        postmeta=postmeta,
        term_taxonomy=term_taxonomy,
        term_relationships=term_relationships,
    )
