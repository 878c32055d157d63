"""Tests for compiling whole feature documents into pytest modules."""

import ast
import re

import pytest

from featuregen.config import AppConfig
from featuregen.exceptions import (
    DecoratorFixtureError,
    MalformedDocumentError,
    PickleStepNotFoundError,
    UnknownKeywordError,
)
from featuregen.gen.feature_file import FeatureFile
from featuregen.gherkin.models import GherkinDocument, Pickle
from featuregen.models import StepRole
from featuregen.steps import pom
from featuregen.steps.bindings import StepRegistry, StepRegistryBuilder


@pytest.fixture
def registry() -> StepRegistry:
    builder = StepRegistryBuilder()

    @builder.given("a user")
    def a_user(*, db):
        pass

    @builder.given("a user named {name}")
    def named_user(name, *, db):
        pass

    @builder.when("they log in")
    def log_in(*, page):
        pass

    @builder.then("they see a dashboard")
    def see_dashboard(*, page, screenshot):
        pass

    @builder.given("a note")
    def note():
        pass

    @builder.step(re.compile(r"step (\d+)"))
    def numbered(number):
        pass

    return builder.build()


def body_of(feature_file: FeatureFile, signature_start: str):
    """Indented body lines of the first definition starting with ``signature_start``."""
    lines = feature_file.lines
    start = next(i for i, line in enumerate(lines) if line.strip().startswith(signature_start))
    indent = len(lines[start]) - len(lines[start].lstrip()) + 4
    body = []
    for line in lines[start + 1:]:
        if not line.startswith(" " * indent):
            break
        body.append(line.strip())
    return body


LOGIN = """
Feature: Auth

  Scenario: Login
    Given a user
    When they log in
    Then they see a dashboard
"""


class TestScenario:
    def test_one_test_with_keyword_and_handler_fixtures(self, compile_feature, registry) -> None:
        feature_file = compile_feature(LOGIN, registry)

        assert feature_file.content.count("def test_") == 1
        assert "class Test_auth_L1:" in feature_file.lines
        assert '    @pytest.mark.bdd_title("Login")' in feature_file.lines
        assert (
            "    def test_login_L3(self, Given, db, When, page, Then, screenshot):" in feature_file.lines
        )
        assert body_of(feature_file, "def test_login_L3") == [
            'Given("a user", db=db)',
            'When("they log in", page=page)',
            'Then("they see a dashboard", page=page, screenshot=screenshot)',
        ]
        assert feature_file.undefined_steps == []

    def test_header_and_tags_fixture(self, compile_feature, registry) -> None:
        feature_file = compile_feature(LOGIN, registry)

        assert feature_file.lines[0] == "# Generated from: features/sample.feature"
        assert "import pytest" in feature_file.lines
        assert "BDD_TAGS = {}" in feature_file.lines
        assert "def bdd_tags(request):" in feature_file.lines
        assert feature_file.content.endswith("\n")

    def test_generated_module_is_valid_python(self, compile_feature, registry) -> None:
        feature_file = compile_feature(
            """
            @fixture:todo_page @web
            Feature: Syntax

              Background:
                Given a user

              Rule: Tagged

                @skip
                Scenario: One
                  When they log in
                  And an unknown "thing"

                Scenario Outline: Named
                  Given a user named <user>

                  Examples:
                    | user      |
                    | o'brien   |
                    | "quoted"  |
            """,
            registry,
        )

        ast.parse(feature_file.content)

    def test_output_is_deterministic(self, compile_feature, registry) -> None:
        assert compile_feature(LOGIN, registry).content == compile_feature(LOGIN, registry).content

    def test_doc_string_argument(self, compile_feature, registry) -> None:
        feature_file = compile_feature(
            '''
            Feature: Notes

              Scenario: Write
                Given a note
                  """
                  hello
                  """
            ''',
            registry,
        )

        assert body_of(feature_file, "def test_write_L3") == [
            'Given("a note", argument={"docString": {"content": "hello"}})'
        ]


class TestUndefinedSteps:
    def test_undefined_step_does_not_stop_generation(self, compile_feature, registry) -> None:
        steps = ["Given step 1"] + [f"And step {n}" for n in range(2, 11)]
        steps[4] = "And an unknown thing"
        text = "Feature: Many\n\n  Scenario: Ten steps\n" + "".join(f"    {step}\n" for step in steps)

        feature_file = compile_feature(text, registry)
        body = body_of(feature_file, "def test_ten_steps_L3")

        assert len(body) == 10
        assert body[4] == 'pytest.fail("Missing step: And an unknown thing")'
        assert len([line for line in body if re.match(r'(Given|And)\("step \d+"\)', line)]) == 9
        assert len(feature_file.undefined_steps) == 1
        undefined = feature_file.undefined_steps[0]
        assert undefined.text == "an unknown thing"
        assert undefined.role is StepRole.CONTEXT
        assert undefined.line == 8
        assert undefined.uri == "features/sample.feature"


class TestStructure:
    def test_background_becomes_before_each(self, compile_feature, registry) -> None:
        feature_file = compile_feature(
            """
            Feature: Todos

              Background:
                Given a user

              Scenario: Empty
                Then they see a dashboard
            """,
            registry,
        )

        assert "    @pytest.fixture(autouse=True)" in feature_file.lines
        assert "    def before_each_L3(self, Given, db):" in feature_file.lines
        assert body_of(feature_file, "def before_each_L3") == ['Given("a user", db=db)']
        assert "    def test_empty_L6(self, Then, page, screenshot):" in feature_file.lines

    def test_rules_become_nested_suites(self, compile_feature, registry) -> None:
        feature_file = compile_feature(
            """
            Feature: Accounts

              Rule: Admins

                Scenario: Admin login
                  Given a user
            """,
            registry,
        )

        assert "class Test_accounts_L1:" in feature_file.lines
        assert "    class Test_admins_L3:" in feature_file.lines
        assert "        def test_admin_login_L5(self, Given, db):" in feature_file.lines

    def test_tags_map_and_flags(self, compile_feature, registry) -> None:
        feature_file = compile_feature(
            """
            @web @slow
            Feature: Tagged

              @smoke @web @skip
              Scenario: One
                Given a user
            """,
            registry,
        )

        lines = feature_file.lines
        assert '    "Tagged|One": ["@web", "@slow", "@smoke", "@skip"],' in lines
        class_line = lines.index("class Test_tagged_L2:")
        assert lines[class_line - 1] == "@pytest.mark.slow"
        test_line = lines.index("    def test_one_L5(self, Given, db):")
        assert lines[test_line - 1] == "    @pytest.mark.skip"

    def test_tag_filtered_binding(self, compile_feature) -> None:
        builder = StepRegistryBuilder()
        builder.given("a user", tags="@admin")(lambda *, admin_db: None)
        builder.given("a user")(lambda *, db: None)

        feature_file = compile_feature(
            """
            Feature: Filtered

              @admin
              Scenario: Admin
                Given a user

              Scenario: Guest
                Given a user
            """,
            builder.build(),
        )

        assert body_of(feature_file, "def test_admin_L4") == ['Given("a user", admin_db=admin_db)']
        assert body_of(feature_file, "def test_guest_L7") == ['Given("a user", db=db)']


OUTLINE = """
Feature: Outline

  Scenario Outline: Log in as user
    Given a user named <user>

    # title-format: login as <user> (#_index_)
    Examples:
      | user  |
      | alice |
      | bob   |
"""


class TestOutline:
    def test_one_test_per_row(self, compile_feature, registry) -> None:
        feature_file = compile_feature(OUTLINE, registry)
        lines = feature_file.lines

        assert "    class Test_log_in_as_user_L3:" in lines
        assert feature_file.content.count("def test_") == 2
        assert '        @pytest.mark.bdd_title("login as alice (#1)")' in lines
        assert '        @pytest.mark.bdd_title("login as bob (#2)")' in lines
        assert body_of(feature_file, "def test_login_as_alice_1_L9") == [
            'Given("a user named alice", db=db)'
        ]
        assert body_of(feature_file, "def test_login_as_bob_2_L10") == ['Given("a user named bob", db=db)']

    def test_default_title_format_from_config(self, compile_feature, registry) -> None:
        text = OUTLINE.replace("    # title-format: login as <user> (#_index_)\n", "")
        app_config = AppConfig(_env_file=None, examples_title_format="Row <_index_>: <user>")

        feature_file = compile_feature(text, registry, app_config)

        assert '        @pytest.mark.bdd_title("Row 1: alice")' in feature_file.lines
        assert '        @pytest.mark.bdd_title("Row 2: bob")' in feature_file.lines

    def test_localized_document(self, compile_feature, registry) -> None:
        feature_file = compile_feature(
            """
            # language: ru
            Функция: Русский язык

              Сценарий: сценарий 1
                Дано a user

              Структура сценария: сценарий 2
                Дано a user named <user>

                Примеры:
                  | user  |
                  | alice |
                  | bob   |
            """,
            registry,
        )
        content = feature_file.content

        assert '@pytest.mark.bdd_title("Русский язык")' in content
        assert '    @pytest.mark.bdd_title("сценарий 1")' in feature_file.lines
        assert 'Given("a user", db=db)' in content
        assert '        @pytest.mark.bdd_title("Example #1")' in feature_file.lines
        assert '        @pytest.mark.bdd_title("Example #2")' in feature_file.lines
        assert 'Given("a user named bob", db=db)' in content


@pytest.fixture
def pom_registry() -> StepRegistry:
    builder = StepRegistryBuilder()

    @builder.page_object()
    class BasePage:
        @pom.given("I open the page")
        def open(self):
            pass

    @builder.page_object("todo_page")
    class TodoPage(BasePage):
        @pom.when("I add todo {text}")
        def add(self, text):
            pass

    @builder.page_object("other_page")
    class OtherPage(BasePage):
        pass

    return builder.build()


class TestDecoratorSteps:
    def test_resolved_from_other_steps(self, compile_feature, pom_registry) -> None:
        feature_file = compile_feature(
            """
            Feature: Todos

              Scenario: Add
                Given I open the page
                When I add todo milk
            """,
            pom_registry,
        )

        assert "    def test_add_L3(self, Given, When, todo_page):" in feature_file.lines
        assert body_of(feature_file, "def test_add_L3") == [
            'Given("I open the page", todo_page=todo_page)',
            'When("I add todo milk", todo_page=todo_page)',
        ]

    def test_resolved_from_fixture_tag(self, compile_feature, pom_registry) -> None:
        feature_file = compile_feature(
            """
            Feature: Pages

              @fixture:other_page
              Scenario: Open
                Given I open the page
            """,
            pom_registry,
        )

        assert "    def test_open_L4(self, Given, other_page):" in feature_file.lines
        assert body_of(feature_file, "def test_open_L4") == ['Given("I open the page", other_page=other_page)']

    def test_unresolvable_step_aborts_document(self, compile_feature, pom_registry) -> None:
        with pytest.raises(DecoratorFixtureError) as exc_info:
            compile_feature(
                """
                Feature: Pages

                  Scenario: Open
                    Given I open the page
                """,
                pom_registry,
            )

        error = exc_info.value
        assert error.uri == "features/sample.feature"
        assert error.line == 4
        assert error.suggested_tags == ["@fixture:todo_page", "@fixture:other_page"]


class TestCustomRunner:
    def test_runner_modules_are_imported(self, compile_feature) -> None:
        builder = StepRegistryBuilder()
        builder.scoped(runner_module="project.checkout_fixtures").given("a cart")(lambda: None)
        app_config = AppConfig(_env_file=None, import_fixtures_from="project.fixtures")

        feature_file = compile_feature(
            """
            Feature: Checkout

              Scenario: Cart
                Given a cart
            """,
            builder.build(),
            app_config,
        )

        assert feature_file.has_custom_runner
        assert feature_file.runner_modules == ["project.checkout_fixtures"]
        imports = [line for line in feature_file.lines if line.startswith("from ")]
        assert imports == [
            "from project.fixtures import *  # noqa: F401,F403",
            "from project.checkout_fixtures import *  # noqa: F401,F403",
        ]


class TestHardErrors:
    def test_document_without_feature(self, parse_feature, registry) -> None:
        loaded = parse_feature("# nothing here\n")

        with pytest.raises(MalformedDocumentError):
            FeatureFile(loaded.document, loaded.pickles, registry).build()

    def test_step_without_pickle_step(self, parse_feature, registry) -> None:
        loaded = parse_feature(LOGIN)

        with pytest.raises(PickleStepNotFoundError) as exc_info:
            FeatureFile(loaded.document, [], registry).build()
        assert exc_info.value.step_text == "a user"

    def test_unknown_keyword(self, registry) -> None:
        document = GherkinDocument.model_validate(
            {
                "uri": "odd.feature",
                "feature": {
                    "location": {"line": 1},
                    "name": "Odd",
                    "children": [
                        {
                            "scenario": {
                                "id": "2",
                                "location": {"line": 2},
                                "name": "Odd step",
                                "steps": [
                                    {"id": "1", "location": {"line": 3}, "keyword": "Foo ", "text": "a user"}
                                ],
                            }
                        }
                    ],
                },
            }
        )
        pickles = [Pickle.model_validate({"id": "3", "steps": [{"id": "4", "text": "a user", "astNodeIds": ["1"]}]})]

        with pytest.raises(UnknownKeywordError):
            FeatureFile(document, pickles, registry).build()

    def test_empty_child(self, registry) -> None:
        document = GherkinDocument.model_validate(
            {"uri": "empty.feature", "feature": {"location": {"line": 1}, "name": "Empty", "children": [{}]}}
        )

        with pytest.raises(MalformedDocumentError):
            FeatureFile(document, [], registry).build()

    def test_fixture_tag_that_is_not_an_identifier(self, compile_feature, registry) -> None:
        with pytest.raises(MalformedDocumentError) as exc_info:
            compile_feature(
                """
                Feature: Pages

                  @fixture:todo-page
                  Scenario: Open
                    Given a user
                """,
                registry,
            )

        assert "@fixture:todo-page" in str(exc_info.value)
        assert "features/sample.feature:3" in str(exc_info.value)
