"""
GraphQL documents for the catalog CMS.

The CMS exposes one schema per content type following the same naming
scheme, so documents are rendered from a small per-kind description.
"""
from dataclasses import dataclass

from internal.domain.value_objects import EntityKind


LOCALIZATIONS = "localizations { data { id attributes { locale } } }"


@dataclass(frozen=True)
class KindSchema:
    """GraphQL names and attribute selection of one content type."""
    single: str
    collection: str
    input_type: str
    attributes: str

    @property
    def type_name(self) -> str:
        return self.single[0].upper() + self.single[1:]

    @property
    def create_mutation(self) -> str:
        return "create" + self.type_name

    @property
    def create_localization_mutation(self) -> str:
        return self.create_mutation + "Localization"

    @property
    def update_mutation(self) -> str:
        return "update" + self.type_name


PARAMETER_TYPE_ATTRIBUTES = f"name slug locale {LOCALIZATIONS}"

PARAMETER_VALUE_ATTRIBUTES = (
    "value code locale "
    "parameter_type { data { id attributes { name } } } "
    f"{LOCALIZATIONS}"
)

PRODUCT_ATTRIBUTES = (
    "part_number title description retail currency slug image_link discount in_stock "
    "params locale "
    "additional_images { link } "
    "subcategory { data { id } } "
    "product_types { data { id } } "
    "product_parameters(pagination: { limit: 200 }) { data { id attributes { "
    "locale parameter_value { data { id attributes { "
    f"{PARAMETER_VALUE_ATTRIBUTES} }} }} }} }} }} }} "
    f"{LOCALIZATIONS}"
)

PRODUCT_PARAMETER_ATTRIBUTES = (
    "locale product { data { id } } parameter_value { data { id } }"
)

RELATION_ATTRIBUTES = f"locale {LOCALIZATIONS}"


SCHEMAS: dict[EntityKind, KindSchema] = {
    EntityKind.PARAMETER_TYPE: KindSchema(
        single="parameterType",
        collection="parameterTypes",
        input_type="ParameterTypeInput",
        attributes=PARAMETER_TYPE_ATTRIBUTES,
    ),
    EntityKind.PARAMETER_VALUE: KindSchema(
        single="parameterValue",
        collection="parameterValues",
        input_type="ParameterValueInput",
        attributes=PARAMETER_VALUE_ATTRIBUTES,
    ),
    EntityKind.PRODUCT: KindSchema(
        single="product",
        collection="products",
        input_type="ProductInput",
        attributes=PRODUCT_ATTRIBUTES,
    ),
    EntityKind.PRODUCT_PARAMETER: KindSchema(
        single="productParameter",
        collection="productParameters",
        input_type="ProductParameterInput",
        attributes=PRODUCT_PARAMETER_ATTRIBUTES,
    ),
    EntityKind.SUBCATEGORY: KindSchema(
        single="subcategory",
        collection="subcategories",
        input_type="SubcategoryInput",
        attributes=RELATION_ATTRIBUTES,
    ),
    EntityKind.PRODUCT_TYPE: KindSchema(
        single="productType",
        collection="productTypes",
        input_type="ProductTypeInput",
        attributes=RELATION_ATTRIBUTES,
    ),
}

# Natural key filters: GraphQL variable declarations and the filter body
NATURAL_KEY_FILTERS: dict[EntityKind, tuple[str, str]] = {
    EntityKind.PARAMETER_TYPE: (
        "$name: String!",
        "{ name: { eq: $name } }",
    ),
    EntityKind.PARAMETER_VALUE: (
        "$value: String!, $parameterTypeId: ID!",
        "{ value: { eq: $value }, parameter_type: { id: { eq: $parameterTypeId } } }",
    ),
    EntityKind.PRODUCT: (
        "$partNumber: String!",
        "{ part_number: { eq: $partNumber } }",
    ),
    EntityKind.PRODUCT_PARAMETER: (
        "$productId: ID!, $parameterValueId: ID!",
        "{ product: { id: { eq: $productId } }, "
        "parameter_value: { id: { eq: $parameterValueId } } }",
    ),
}


def schema_for(kind: EntityKind) -> KindSchema:
    """Get the schema description of a kind."""
    return SCHEMAS[kind]


def find_by_natural_key_query(kind: EntityKind) -> str:
    schema = schema_for(kind)
    declarations, filters = NATURAL_KEY_FILTERS[kind]
    return f"""
    query Find{schema.type_name}({declarations}, $locale: I18NLocaleCode!) {{
      {schema.collection}(filters: {filters}, locale: $locale) {{
        data {{ id attributes {{ {schema.attributes} }} }}
      }}
    }}
    """


def get_by_id_query(kind: EntityKind) -> str:
    schema = schema_for(kind)
    return f"""
    query Get{schema.type_name}($id: ID!, $locale: I18NLocaleCode) {{
      {schema.single}(id: $id, locale: $locale) {{
        data {{ id attributes {{ {schema.attributes} }} }}
      }}
    }}
    """


def list_page_query(kind: EntityKind) -> str:
    schema = schema_for(kind)
    return f"""
    query List{schema.collection}($locale: I18NLocaleCode!, $pagination: PaginationArg) {{
      {schema.collection}(locale: $locale, pagination: $pagination, sort: "id:asc") {{
        data {{ id attributes {{ {schema.attributes} }} }}
        meta {{ pagination {{ total page pageSize pageCount }} }}
      }}
    }}
    """


def list_by_product_query() -> str:
    schema = schema_for(EntityKind.PRODUCT_PARAMETER)
    return f"""
    query ListProductParameters($productId: ID!, $locale: I18NLocaleCode!) {{
      {schema.collection}(
        filters: {{ product: {{ id: {{ eq: $productId }} }} }}
        locale: $locale
        pagination: {{ limit: 500 }}
      ) {{
        data {{ id attributes {{ {schema.attributes} }} }}
      }}
    }}
    """


def create_mutation(kind: EntityKind) -> str:
    schema = schema_for(kind)
    return f"""
    mutation {schema.create_mutation}($data: {schema.input_type}!, $locale: I18NLocaleCode!) {{
      {schema.create_mutation}(data: $data, locale: $locale) {{
        data {{ id attributes {{ {schema.attributes} }} }}
      }}
    }}
    """


def create_localization_mutation(kind: EntityKind) -> str:
    schema = schema_for(kind)
    return f"""
    mutation {schema.create_localization_mutation}($id: ID!, $locale: I18NLocaleCode!, $data: {schema.input_type}!) {{
      {schema.create_localization_mutation}(id: $id, locale: $locale, data: $data) {{
        data {{ id attributes {{ {schema.attributes} }} }}
      }}
    }}
    """


def update_mutation(kind: EntityKind) -> str:
    schema = schema_for(kind)
    return f"""
    mutation {schema.update_mutation}($id: ID!, $data: {schema.input_type}!) {{
      {schema.update_mutation}(id: $id, data: $data) {{
        data {{ id attributes {{ {schema.attributes} }} }}
      }}
    }}
    """
