"""Tests for the AST parser module."""

import pytest
from codescope.core.ast_parser import parse_source, parse_file, detect_language, ParseResult
from codescope.core.ast_parser.java_parser import JavaParser


# =========================================================================
# Sample Java source fixtures
# =========================================================================

SPRING_CONTROLLER = '''
package com.acme.orders;

import org.springframework.web.bind.annotation.*;
import org.slf4j.Logger;

@RestController
@RequestMapping("/api/orders")
public class OrderController extends BaseController implements OrdersApi, Auditable<Order> {

    private static final Logger log = LoggerFactory.getLogger(OrderController.class);

    public OrderController(OrderService service) {
        this.service = service;
    }

    @GetMapping(value = {"/{id}", "/by-id/{id}"})
    public Order get(@PathVariable String id) {
        log.info("Fetching order {} for {}", id, user.getEmail());
        return service.find(id);
    }

    @RequestMapping(path = "/search", method = RequestMethod.POST)
    public List<Order> search(SearchRequest request, int page) {
        LOGGER.warn("search");
        return List.of();
    }
}
'''

NESTED_TYPES = '''
package com.acme;

public class Outer {
    public enum Status { ACTIVE, INACTIVE; void flip() {} }

    static class Inner {
        void run() { log.debug("inner"); }
    }

    void outer() { log.error("outer"); }
}
'''

INTERFACE_AND_RECORD = '''
package com.acme.api;

public interface UsersApi extends BaseApi, Versioned {
    @GetMapping("/users")
    List<User> listUsers();
}

record UserDto(String name, String email) {}

@interface Audited {}
'''

TEXT_BLOCK = '''
class Q {
    @Query("""
        select * from users
        """)
    void find() {}
}
'''

SYNTAX_ERROR_FILE = '''
package broken;

public class Broken {
    void ok() { log.info("still here"); }
    void bad( {
}
'''


# =========================================================================
# Tests: Language detection
# =========================================================================

class TestLanguageDetection:
    def test_java(self):
        assert detect_language("src/main/java/Foo.java") == "java"

    def test_unknown(self):
        assert detect_language("foo/bar.py") is None

    def test_case_insensitive(self):
        assert detect_language("FOO.JAVA") == "java"

    def test_unsupported_source_raises(self):
        with pytest.raises(ValueError):
            parse_source("print('hi')", "script.py")


# =========================================================================
# Tests: Type declarations
# =========================================================================

class TestTypeDeclarations:
    def test_class_metadata(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        assert isinstance(result, ParseResult)
        assert result.language == "java"
        assert result.package == "com.acme.orders"

        assert len(result.types) == 1
        decl = result.types[0]
        assert decl.kind == "class"
        assert decl.name == "OrderController"
        assert decl.qualified_name == "com.acme.orders.OrderController"
        assert decl.extends == ["BaseController"]
        assert decl.implements == ["OrdersApi", "Auditable"]

    def test_annotations_on_class(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        decl = result.types[0]
        names = [m.name for m in decl.markers]
        assert names == ["RestController", "RequestMapping"]
        assert decl.marker("RequestMapping").values("value") == ["/api/orders"]
        assert decl.marker("RestController").arguments == {}

    def test_methods_and_constructor(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        methods = {m.name: m for m in result.types[0].methods}
        assert set(methods) == {"OrderController", "get", "search"}
        assert methods["OrderController"].is_constructor is True
        assert methods["search"].parameter_count == 2

    def test_array_and_named_annotation_arguments(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        methods = {m.name: m for m in result.types[0].methods}

        get_mapping = methods["get"].markers[0]
        assert get_mapping.name == "GetMapping"
        assert get_mapping.values("value", "path") == ["/{id}", "/by-id/{id}"]

        request_mapping = methods["search"].markers[0]
        assert request_mapping.values("path") == ["/search"]
        assert request_mapping.values("method") == ["RequestMethod.POST"]

    def test_nested_types_get_qualified_names(self):
        result = parse_source(NESTED_TYPES, "Outer.java")
        names = {t.qualified_name: t for t in result.types}
        assert set(names) == {"com.acme.Outer", "com.acme.Outer.Status", "com.acme.Outer.Inner"}
        assert names["com.acme.Outer.Status"].kind == "enum"
        assert names["com.acme.Outer.Inner"].parent_name == "Outer"
        assert [m.name for m in names["com.acme.Outer.Status"].methods] == ["flip"]

    def test_interface_record_and_annotation_type(self):
        result = parse_source(INTERFACE_AND_RECORD, "UsersApi.java")
        kinds = {t.name: t.kind for t in result.types}
        assert kinds == {"UsersApi": "interface", "UserDto": "record", "Audited": "annotation"}

        api = next(t for t in result.types if t.name == "UsersApi")
        assert api.extends == ["BaseApi", "Versioned"]
        assert api.methods[0].markers[0].values("value") == ["/users"]

    def test_text_block_literal(self):
        result = parse_source(TEXT_BLOCK, "Q.java")
        query = result.types[0].methods[0].markers[0]
        assert query.values("value") == ["select * from users"]


# =========================================================================
# Tests: Call sites
# =========================================================================

class TestLogCalls:
    def test_calls_collected_with_arguments(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        calls = result.types[0].calls
        assert [(c.receiver, c.method) for c in calls] == [("log", "info"), ("LOGGER", "warn")]
        assert calls[0].arguments == ['"Fetching order {} for {}"', "id", "user.getEmail()"]

    def test_call_line_numbers_are_one_based(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        info_call = result.types[0].calls[0]
        line = SPRING_CONTROLLER.splitlines()[info_call.line - 1]
        assert "log.info" in line

    def test_nested_type_calls_stay_with_nested_type(self):
        result = parse_source(NESTED_TYPES, "Outer.java")
        by_name = {t.name: t for t in result.types}
        assert [c.method for c in by_name["Outer"].calls] == ["error"]
        assert [c.method for c in by_name["Inner"].calls] == ["debug"]


# =========================================================================
# Tests: Literal handling
# =========================================================================

class TestLiteralValue:
    def test_string_literal_unquoted(self):
        assert JavaParser.literal_value('"hello"') == "hello"

    def test_concatenation_kept_as_source(self):
        assert JavaParser.literal_value('"a" + b') == '"a" + b'

    def test_non_literal_passthrough(self):
        assert JavaParser.literal_value("RequestMethod.GET") == "RequestMethod.GET"


# =========================================================================
# Tests: Edge cases
# =========================================================================

class TestEdgeCases:
    def test_empty_file(self):
        result = parse_source("", "Empty.java")
        assert result.types == []
        assert result.imports == []
        assert result.package == ""

    def test_imports_extracted(self):
        result = parse_source(SPRING_CONTROLLER, "OrderController.java")
        assert "org.springframework.web.bind.annotation.*" in result.imports
        assert "org.slf4j.Logger" in result.imports

    def test_syntax_errors_still_parse(self):
        result = parse_source(SYNTAX_ERROR_FILE, "Broken.java")
        assert isinstance(result, ParseResult)
        assert any(e.severity == "warning" for e in result.errors)
        assert not result.has_fatal_error

    def test_parse_file_relative_path(self, tmp_path):
        src = tmp_path / "src" / "Outer.java"
        src.parent.mkdir()
        src.write_text(NESTED_TYPES)
        result = parse_file(str(src), str(tmp_path))
        assert result.file_path == "src/Outer.java"
        assert result.line_count > 0

    def test_parse_file_missing_reports_error(self, tmp_path):
        result = JavaParser().parse_file(str(tmp_path / "Missing.java"), str(tmp_path))
        assert result.types == []
        assert result.errors and result.errors[0].severity == "error"
        assert result.has_fatal_error
