"""
FQL helper constructors.

Each helper builds an `Expr` holding the wire form of one FQL function call.
Nothing here talks to the network: the helpers only structure values, and
the service performs all semantic validation. `BINDINGS` maps the FQL names
users type in the shell (`Add`, `Get`, ...) to these helpers.
"""

from typing import Any, Dict, Optional

from .expr import Expr

_MISSING = object()


def _fn(raw: Dict[str, Any], **optional: Any) -> Expr:
    """Builds an Expr, dropping optional keys that were not supplied."""
    raw = dict(raw)
    for key, value in optional.items():
        if value is not _MISSING:
            raw[key] = value
    return Expr(raw)


def _varargs(values: tuple) -> Any:
    """A single argument is sent bare; several are sent as an array."""
    return values[0] if len(values) == 1 else list(values)


# --- Basic ---


def abort(msg):
    return _fn({"abort": msg})


def at(timestamp, expr):
    return _fn({"at": timestamp, "expr": expr})


def let(bindings: Dict[str, Any], in_expr):
    return _fn({"let": [Expr({k: v}) for k, v in bindings.items()], "in": in_expr})


def var(name):
    return _fn({"var": name})


def if_(condition, then, else_):
    return _fn({"if": condition, "then": then, "else": else_})


def do(*expressions):
    return _fn({"do": list(expressions)})


def lambda_(params, expr):
    return _fn({"lambda": params, "expr": expr})


def call(function, *arguments):
    return _fn({"call": function, "arguments": _varargs(arguments)})


def query(lambda_expr):
    return _fn({"query": lambda_expr})


# --- Collection functions ---


def map_(collection, lambda_expr):
    return _fn({"map": lambda_expr, "collection": collection})


def foreach(collection, lambda_expr):
    return _fn({"foreach": lambda_expr, "collection": collection})


def filter_(collection, lambda_expr):
    return _fn({"filter": lambda_expr, "collection": collection})


def take(number, collection):
    return _fn({"take": number, "collection": collection})


def drop(number, collection):
    return _fn({"drop": number, "collection": collection})


def prepend(elements, collection):
    return _fn({"prepend": elements, "collection": collection})


def append(elements, collection):
    return _fn({"append": elements, "collection": collection})


def reverse(source):
    return _fn({"reverse": source})


def is_empty(collection):
    return _fn({"is_empty": collection})


def is_nonempty(collection):
    return _fn({"is_nonempty": collection})


# --- Read functions ---


def get(ref, ts=_MISSING):
    return _fn({"get": ref}, ts=ts)


def key_from_secret(secret):
    return _fn({"key_from_secret": secret})


def paginate(set_expr, opts: Optional[Dict[str, Any]] = None):
    raw = {"paginate": set_expr}
    raw.update(opts or {})
    return Expr(raw)


def exists(ref, ts=_MISSING):
    return _fn({"exists": ref}, ts=ts)


# --- Write functions ---


def create(collection_ref, params=_MISSING):
    return _fn({"create": collection_ref}, params=params)


def update(ref, params):
    return _fn({"update": ref, "params": params})


def replace(ref, params):
    return _fn({"replace": ref, "params": params})


def delete(ref):
    return _fn({"delete": ref})


def create_collection(params):
    return _fn({"create_collection": params})


def create_database(params):
    return _fn({"create_database": params})


def create_index(params):
    return _fn({"create_index": params})


def create_function(params):
    return _fn({"create_function": params})


def create_role(params):
    return _fn({"create_role": params})


def create_key(params):
    return _fn({"create_key": params})


# --- Sets ---


def singleton(ref):
    return _fn({"singleton": ref})


def events(ref_set):
    return _fn({"events": ref_set})


def match(index, *terms):
    raw = {"match": index}
    if terms:
        raw["terms"] = _varargs(terms)
    return Expr(raw)


def union(*sets):
    return _fn({"union": _varargs(sets)})


def intersection(*sets):
    return _fn({"intersection": _varargs(sets)})


def difference(*sets):
    return _fn({"difference": _varargs(sets)})


def distinct(source):
    return _fn({"distinct": source})


def join(source, target):
    return _fn({"join": source, "with": target})


def documents(collection):
    return _fn({"documents": collection})


# --- Authentication ---


def login(ref, params):
    return _fn({"login": ref, "params": params})


def logout(delete_tokens):
    return _fn({"logout": delete_tokens})


def identify(ref, password):
    return _fn({"identify": ref, "password": password})


def current_identity():
    return _fn({"current_identity": None})


def has_current_identity():
    return _fn({"has_current_identity": None})


# --- Strings ---


def concat(strings, separator=_MISSING):
    return _fn({"concat": strings}, separator=separator)


def casefold(string, normalizer=_MISSING):
    return _fn({"casefold": string}, normalizer=normalizer)


def lowercase(string):
    return _fn({"lowercase": string})


def uppercase(string):
    return _fn({"uppercase": string})


def length(string):
    return _fn({"length": string})


def trim(string):
    return _fn({"trim": string})


def contains_str(string, search):
    return _fn({"containsstr": string, "search": search})


def starts_with(string, search):
    return _fn({"startswith": string, "search": search})


def ends_with(string, search):
    return _fn({"endswith": string, "search": search})


def format_(fmt, *values):
    return _fn({"format": fmt, "values": _varargs(values)})


# --- Time and date ---


def time(string):
    return _fn({"time": string})


def epoch(number, unit):
    return _fn({"epoch": number, "unit": unit})


def date(string):
    return _fn({"date": string})


def now():
    return _fn({"now": None})


# --- Misc ---


def new_id():
    return _fn({"new_id": None})


def ref(collection_ref, id_):
    return _fn({"ref": collection_ref, "id": id_})


def database(name, scope=_MISSING):
    return _fn({"database": name}, scope=scope)


def index(name, scope=_MISSING):
    return _fn({"index": name}, scope=scope)


def collection(name, scope=_MISSING):
    return _fn({"collection": name}, scope=scope)


def function(name, scope=_MISSING):
    return _fn({"function": name}, scope=scope)


def role(name, scope=_MISSING):
    return _fn({"role": name}, scope=scope)


def collections(scope=None):
    return _fn({"collections": scope})


def databases(scope=None):
    return _fn({"databases": scope})


def indexes(scope=None):
    return _fn({"indexes": scope})


def functions(scope=None):
    return _fn({"functions": scope})


def roles(scope=None):
    return _fn({"roles": scope})


def keys(scope=None):
    return _fn({"keys": scope})


def tokens(scope=None):
    return _fn({"tokens": scope})


def equals(*values):
    return _fn({"equals": _varargs(values)})


def contains_path(path, value):
    return _fn({"contains_path": path, "in": value})


def select(path, from_, default=_MISSING):
    return _fn({"select": path, "from": from_}, default=default)


def to_string(value):
    return _fn({"to_string": value})


def to_number(value):
    return _fn({"to_number": value})


def to_object(value):
    return _fn({"to_object": value})


def to_array(value):
    return _fn({"to_array": value})


def merge(merge_into, to_merge, lambda_expr=_MISSING):
    return _fn({"merge": merge_into, "with": to_merge}, **{"lambda": lambda_expr})


# --- Math and logic ---


def abs_(number):
    return _fn({"abs": number})


def add(*numbers):
    return _fn({"add": _varargs(numbers)})


def subtract(*numbers):
    return _fn({"subtract": _varargs(numbers)})


def multiply(*numbers):
    return _fn({"multiply": _varargs(numbers)})


def divide(*numbers):
    return _fn({"divide": _varargs(numbers)})


def modulo(*numbers):
    return _fn({"modulo": _varargs(numbers)})


def max_(*values):
    return _fn({"max": _varargs(values)})


def min_(*values):
    return _fn({"min": _varargs(values)})


def count(collection):
    return _fn({"count": collection})


def sum_(collection):
    return _fn({"sum": collection})


def mean(collection):
    return _fn({"mean": collection})


def lt(*values):
    return _fn({"lt": _varargs(values)})


def lte(*values):
    return _fn({"lte": _varargs(values)})


def gt(*values):
    return _fn({"gt": _varargs(values)})


def gte(*values):
    return _fn({"gte": _varargs(values)})


def and_(*booleans):
    return _fn({"and": _varargs(booleans)})


def or_(*booleans):
    return _fn({"or": _varargs(booleans)})


def not_(boolean):
    return _fn({"not": boolean})


BINDINGS = {
    "Abort": abort,
    "Abs": abs_,
    "Add": add,
    "And": and_,
    "Append": append,
    "At": at,
    "Call": call,
    "Casefold": casefold,
    "Collection": collection,
    "Collections": collections,
    "Concat": concat,
    "ContainsPath": contains_path,
    "ContainsStr": contains_str,
    "Count": count,
    "Create": create,
    "CreateCollection": create_collection,
    "CreateDatabase": create_database,
    "CreateFunction": create_function,
    "CreateIndex": create_index,
    "CreateKey": create_key,
    "CreateRole": create_role,
    "CurrentIdentity": current_identity,
    "Database": database,
    "Databases": databases,
    "Date": date,
    "Delete": delete,
    "Difference": difference,
    "Distinct": distinct,
    "Divide": divide,
    "Do": do,
    "Documents": documents,
    "Drop": drop,
    "EndsWith": ends_with,
    "Epoch": epoch,
    "Equals": equals,
    "Events": events,
    "Exists": exists,
    "Filter": filter_,
    "Foreach": foreach,
    "Format": format_,
    "Function": function,
    "Functions": functions,
    "Get": get,
    "GT": gt,
    "GTE": gte,
    "HasCurrentIdentity": has_current_identity,
    "Identify": identify,
    "If": if_,
    "Index": index,
    "Indexes": indexes,
    "Intersection": intersection,
    "IsEmpty": is_empty,
    "IsNonEmpty": is_nonempty,
    "Join": join,
    "KeyFromSecret": key_from_secret,
    "Keys": keys,
    "Lambda": lambda_,
    "Length": length,
    "Let": let,
    "Login": login,
    "Logout": logout,
    "LowerCase": lowercase,
    "LT": lt,
    "LTE": lte,
    "Map": map_,
    "Match": match,
    "Max": max_,
    "Mean": mean,
    "Merge": merge,
    "Min": min_,
    "Modulo": modulo,
    "Multiply": multiply,
    "NewId": new_id,
    "Not": not_,
    "Now": now,
    "Or": or_,
    "Paginate": paginate,
    "Prepend": prepend,
    "Query": query,
    "Ref": ref,
    "Replace": replace,
    "Reverse": reverse,
    "Role": role,
    "Roles": roles,
    "Select": select,
    "Singleton": singleton,
    "StartsWith": starts_with,
    "Subtract": subtract,
    "Sum": sum_,
    "Take": take,
    "Time": time,
    "ToArray": to_array,
    "ToNumber": to_number,
    "ToObject": to_object,
    "ToString": to_string,
    "Tokens": tokens,
    "Trim": trim,
    "Union": union,
    "Update": update,
    "UpperCase": uppercase,
    "Var": var,
}
