# sdc

`sdc` is a library for collecting stock market data. It keeps work
queues of symbols and proxy servers in Redis sets, fetches pages and API
responses over HTTP (directly or through a proxy), turns the HTML tables
of financial pages into JSON records, and hands those records to
exporters that write them to a database loader and to JSON files.

## Modules

- `sdc.cache.CacheManager` – named string sets in Redis: `connect`,
  `disconnect`, `add_to_set`, `get_from_set`, `pop_from_set`,
  `get_all_from_set`, `delete_from_set`, `get_length`, `delete_set`,
  `move_set` and `copy_set`. It can be used as a context manager.
  `get_from_set` and `pop_from_set` return `None` when the set is empty.
- `sdc.common` – the cache key names (`CACHE_KEY_SYMBOL`,
  `CACHE_KEY_PROXY`, `CACHE_KEY_SYMBOL_ERROR`, ...), `clear_cache`,
  `cache_cleanup`, `concat_maps`, `count_matches`, and helpers that read
  the `json`/`db` tags kept in dataclass field metadata
  (`get_json_struct_metadata`, `get_field_type_by_tag`,
  `get_primary_key_field_names`, `is_key_field`).
- `sdc.errors` – `HttpServerError` (status code, headers, message) and
  `WgetError`.
- `sdc.httpreader` – `HttpReader` with `read(base_url, params)` and
  `redirected_url(url)`, and `new_local_client()` /
  `new_proxy_client("host:port:user:password")` to make the
  `requests.Session` it uses. Replies other than 200 raise
  `HttpServerError`.
- `sdc.proxies` – `is_proxy_valid`, `validate_proxies` (20 checks at a
  time) and `load_proxies(cm, key, proxy_file)`, which stores the working
  proxies of a file in a cache set and returns how many were added.
- `sdc.msschema` – dataclasses for the market data API: `Tickers`,
  `StockExchange`, `Intraday`, `EOD`, `Pagination`, `TickersBody`,
  `EODBody`, with `from_dict` and `to_dict`.
- `sdc.mscollector.MSCollector` – `collect_tickers`, `load_to_db`,
  `collect_eod` (end-of-day prices for up to 20 stored tickers) and
  `load_tickers_file`.
- `sdc.values` – normalisation of scraped labels and cells:
  `normalise_json_key`, `normalise_json_value`, `string_to_float`,
  `string_to_int`, `string_to_date`, `convert_fiscal_to_date`,
  `is_valid_value`, `fill_default_value` and related checks.
- `sdc.htmldom` – a small HTML tree: `parse_html`, `Node`, `NodeType`,
  `first_text_node`, `text_of_adjacent_div`, `search_text`.
- `sdc.saparser.SAHTMLParser` – decodes overview tables
  (`decode_overview_pages`), quarterly financial tables
  (`decode_financials_page`) and the analyst rating grid
  (`decode_analyst_ratings_grid`).
- `sdc.exporters` – `FileExporter` (writes `<path>/<symbol>/<table>.json`;
  `FileExporter.for_source("SA")` uses `$SDC_HOME/data/SA`), `DBExporter`
  and `DataExporters`, which passes each record to several exporters in
  turn.
- `sdc.sacollector` – `SACollector` collects a symbol's overview, income
  statement, balance sheet, cash flow, ratios and analyst ratings, and
  follows renamed symbols with `map_redirected_symbol`.
  `collect_financials_for_symbol(collector, symbol)` creates the tables
  and collects everything for one symbol.
- `sdc.workerbuilder` – the `Worker` base class and `CommonWorkerBuilder`,
  whose `prepare` queues symbols from a tickers JSON file, from the error
  set (to continue an earlier run) or from the `yf_tickers` table, and
  loads proxies from a file.
- `sdc.parallel` – `ParallelCollector(new_builder, cache, params)` runs
  `execute(parallel)` over the queued symbols with that many threads.
  Each worker starts with a cached proxy, moves to another when the
  server answers 429, and ends on a direct connection. Symbols answered
  with 404 go to the invalid set, other failures to the error set.
  `execute` prints and returns a results summary. `SAWorker` and
  `SAWorkerBuilder(tables, schema)` do the per-symbol work with
  `SACollector`.

## What you supply

The package holds no database driver. `DBExporter`, `MSCollector`,
`SACollector` and the worker builders take a loader object that you
provide, with these methods:

- `create_schema(schema)` and `exec(sql)`
- `create_table_by_json_struct(table, entity_type)`
- `load_by_json_text(json_text, table, entity_type)`, returning the
  number of rows loaded
- `run_query(sql, row_type)`, returning a list of rows with a `symbol`
  attribute

`SACollector` also needs a mapping from every `SADataKind` to an
`SATable(name, entity_type)`, where `entity_type` is a dataclass whose
fields carry `json` (and for primary keys `db="PrimaryKey"`) metadata.
The package does not define these record types for the financial pages.

## What it does not do

There is no command-line program: everything is called from Python.
There is no worker for end-of-day price pages and no database
implementation; only the loader interface above is used.

## Configuration

| Variable      | Used for                                           |
|---------------|----------------------------------------------------|
| `REDISHOST`   | Redis host for `CacheManager.connect`              |
| `REDISPORT`   | Redis port for `CacheManager.connect`              |
| `SDC_HOME`    | root of `data/<source>/` for `FileExporter.for_source` |
| `MSACCESSKEY` | read into `MSCollector.access_key`                 |

Proxy checks run the `nc` and `wget` programs, which must be on `PATH`.

## Examples

```python
from sdc.cache import CacheManager

with CacheManager() as cm:
    cm.add_to_set("SYMBOLS", "msft")
    print(cm.get_length("SYMBOLS"))    # 1
    print(cm.pop_from_set("SYMBOLS"))  # msft
    print(cm.pop_from_set("SYMBOLS"))  # None
```

```python
from sdc.values import convert_fiscal_to_date, normalise_json_key, string_to_date

normalise_json_key("Quarter Ending")   # "period_ending"
convert_fiscal_to_date("Q1 2006")      # "2005-09-30"
convert_fiscal_to_date("H2 2006")      # "2006-12-31"
string_to_date("Jan '06")              # "2006-01-01"
```

## Running the tests

The tests use `pytest` and `responses`, listed under the `test` extra:

```
pip install -e .[test]
pytest
```