import pytest

from conftest import TEA_RECIPE, page
from extractor import (
    Recipe,
    RecipeNotFoundError,
    extract_recipe,
    find_json_ld_blocks,
    normalize_recipe,
    resolve_recipe,
)


def test_tea_recipe_end_to_end(tea_page):
    assert extract_recipe(tea_page).to_dict() == {
        "name": "Tea",
        "description": "",
        "ingredients": ["Water", "Tea bag"],
        "instructions": ["Boil water", "Steep tea"],
        "servings": None,
        "prepTime": None,
        "cookTime": None,
        "image": None,
    }


def test_malformed_blocks_are_skipped():
    html = page("{not json", {"@type": "WebSite", "name": "Site"}, TEA_RECIPE)
    blocks = find_json_ld_blocks(html)
    assert len(blocks) == 2
    assert extract_recipe(html).name == "Tea"


def test_script_type_matching_is_case_insensitive():
    html = (
        '<html><head><SCRIPT TYPE="Application/LD+JSON">'
        '{"@type": "Recipe", "name": "Loud"}'
        "</SCRIPT></head></html>"
    )
    assert extract_recipe(html).name == "Loud"


def test_other_scripts_are_ignored():
    html = (
        '<script type="text/javascript">var x = {"@type": "Recipe"};</script>'
        '<script>{"@type": "Recipe", "name": "Untyped"}</script>'
    )
    assert find_json_ld_blocks(html) == []


def test_graph_wrapper_skips_non_recipe_items():
    html = page({
        "@context": "https://schema.org",
        "@graph": [
            {"@type": "WebPage", "name": "Page"},
            {"@type": "Recipe", "name": "Graph Soup"},
        ],
    })
    assert extract_recipe(html).name == "Graph Soup"


def test_array_wrapper():
    html = page([{"@type": "Organization"}, {"@type": "Recipe", "name": "Listed"}])
    assert extract_recipe(html).name == "Listed"


def test_first_candidate_wins():
    first = {"@type": "Recipe", "name": "First"}
    second = {"@type": "Recipe", "name": "Second"}
    assert resolve_recipe([{"@type": "WebSite"}, first, second]) is first


def test_direct_recipe_takes_priority_over_its_graph():
    data = {"@type": "Recipe", "name": "Outer", "@graph": [{"@type": "Recipe", "name": "Inner"}]}
    assert resolve_recipe([data])["name"] == "Outer"


def test_non_object_candidates_are_ignored():
    assert resolve_recipe([None, 3, "Recipe", [None, 1]]) is None


def test_no_recipe_raises():
    with pytest.raises(RecipeNotFoundError):
        extract_recipe(page({"@type": "WebSite"}, "{broken"))


def test_page_without_json_ld_raises():
    with pytest.raises(RecipeNotFoundError):
        extract_recipe("<html><body>Just text</body></html>")


def test_defaults_for_missing_fields():
    recipe = normalize_recipe({"@type": "Recipe"})
    assert recipe == Recipe(
        name="Untitled Recipe",
        description="",
        ingredients=[],
        instructions=[],
        servings=None,
        prep_time=None,
        cook_time=None,
        image=None,
    )


def test_ingredients_are_trimmed_and_non_strings_blanked():
    recipe = normalize_recipe({"recipeIngredient": ["  2 eggs ", 3, None, "salt"]})
    assert recipe.ingredients == ["2 eggs", "", "", "salt"]


def test_instruction_shapes():
    recipe = normalize_recipe({
        "recipeInstructions": [
            "Chop onions",
            {"@type": "HowToStep", "text": "Fry onions", "name": "Frying"},
            {"@type": "HowToSection", "name": "Serving"},
            {"@type": "HowToStep", "text": ""},
            {"@type": "HowToStep"},
            "",
            42,
        ]
    })
    assert recipe.instructions == ["Chop onions", "Fry onions", "Serving"]


def test_single_string_instructions():
    recipe = normalize_recipe({"recipeInstructions": "Mix everything."})
    assert recipe.instructions == ["Mix everything."]


def test_times_and_servings_pass_through():
    recipe = normalize_recipe({
        "recipeYield": ["4", "4 servings"],
        "prepTime": "PT15M",
        "cookTime": "PT1H",
    })
    assert recipe.servings == ["4", "4 servings"]
    assert recipe.prep_time == "PT15M"
    assert recipe.cook_time == "PT1H"


@pytest.mark.parametrize("image, expected", [
    ("https://img.example.com/a.jpg", "https://img.example.com/a.jpg"),
    (["http://img.example.com/a.jpg", "https://img.example.com/b.jpg"], "http://img.example.com/a.jpg"),
    ({"@type": "ImageObject", "url": "https://img.example.com/c.jpg"}, "https://img.example.com/c.jpg"),
    ([{"@type": "ImageObject", "url": "https://img.example.com/d.jpg"}], "https://img.example.com/d.jpg"),
    ("javascript:alert(1)", None),
    ("data:image/png;base64,AAAA", None),
    ("/relative/image.jpg", None),
    ("not a url", None),
    ([], None),
    ({"@type": "ImageObject"}, None),
    (12, None),
])
def test_image_resolution(image, expected):
    assert normalize_recipe({"image": image}).image == expected
