"""# Scripts

This directory contains the one-off data migration scripts.

## Scripts

| Script | Purpose |
|--------|---------|
| `fix_metadata_cell_ids.py` | Rebuilds metadata cell sets in canonical sample order |
| `dynamo_to_sql.py` | Loads the document-store dumps into PostgreSQL |
| `migrate.py` | Creates or drops the relational schema |

## Usage

```bash
# Relational schema
migrate-schema
migrate-schema --direction down --dry-run

# Cell set repair
fix-metadata-cell-ids --environment staging --dry-run

# Document store -> SQL
dynamo-to-sql --dumps-dir downloaded_data
```
"""
