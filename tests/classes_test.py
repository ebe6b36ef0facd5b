import io

from cli import run_source
from errors import Diagnostics
from interpreter import Interpreter


def run(source):
    out = io.StringIO()
    err = io.StringIO()
    diagnostics = Diagnostics(stream=err)
    run_source(source, Interpreter(diagnostics, out=out), diagnostics)
    return out.getvalue(), err.getvalue(), diagnostics


def expect_output(source, expected):
    out, err, _ = run(source)
    if err:
        raise AssertionError(f"Unexpected errors:\n{err}")
    if out != expected:
        raise AssertionError(f"Expected:\n{expected!r}\nGot:\n{out!r}")


def expect_runtime_error(source, message, line):
    _, err, diagnostics = run(source)
    if not diagnostics.had_runtime_error:
        raise AssertionError(f"Expected a runtime error, got:\n{err}")
    if err != f"{message}\n[line {line}]\n":
        raise AssertionError(f"Expected {message!r} on line {line}, got {err!r}")


def test_instances_have_independent_fields():
    source = """
    class Box {}
    var a = Box();
    var b = Box();
    a.value = 1;
    b.value = 2;
    print a.value;
    print b.value;
    print a;
    print Box;
    """
    expect_output(source, "1\n2\nBox instance\nBox\n")


def test_initializer_yields_instance():
    source = """
    class Point {
        init(x, y) {
            this.x = x;
            this.y = y;
        }
        sum() { return this.x + this.y; }
    }
    var p = Point(1, 2);
    print p;
    print p.sum();
    """
    expect_output(source, "Point instance\n3\n")


def test_bare_return_in_initializer_and_direct_init_call():
    source = """
    class Flag {
        init(on) {
            this.on = on;
            if (!on) return;
            this.extra = "set";
        }
    }
    var f = Flag(false);
    print f.on;
    print f.init(true);
    print f.extra;
    """
    expect_output(source, "false\nFlag instance\nset\n")


def test_bound_methods_remember_their_instance():
    source = """
    class Person {
        init(name) { this.name = name; }
        greet() { return "hi " + this.name; }
    }
    var bob = Person("bob");
    var greet = bob.greet;
    bob = Person("alice");
    print greet();
    print bob.greet();
    """
    expect_output(source, "hi bob\nhi alice\n")


def test_each_access_binds_a_fresh_method():
    source = """
    class A { m() {} }
    var a = A();
    print a.m == a.m;
    var m = a.m;
    print m == m;
    """
    expect_output(source, "false\ntrue\n")


def test_fields_shadow_methods():
    source = """
    class A { m() { return "method"; } }
    var a = A();
    print a.m();
    fun replacement() { return "field"; }
    a.m = replacement;
    print a.m();
    """
    expect_output(source, "method\nfield\n")


def test_methods_can_reference_their_class():
    source = """
    class Node {
        init(depth) { this.depth = depth; }
        child() { return Node(this.depth + 1); }
    }
    print Node(0).child().child().depth;
    """
    expect_output(source, "2\n")


def test_closures_in_methods_capture_this():
    source = """
    class Counter {
        init() { this.n = 0; }
        incrementer() {
            fun inc() { this.n = this.n + 1; return this.n; }
            return inc;
        }
    }
    var c = Counter();
    var inc = c.incrementer();
    inc();
    print inc();
    print c.n;
    """
    expect_output(source, "2\n2\n")


def test_inheritance_and_super():
    source = """
    class A {
        init(tag) { this.tag = tag; }
        method() { return "A " + this.tag; }
    }
    class B < A {
        method() { return "B"; }
        test() { return super.method(); }
    }
    class C < B {}
    var c = C("c");
    print c.method();
    print c.test();
    """
    expect_output(source, "B\nA c\n")


def test_constructor_arity():
    expect_runtime_error("class A { init(a, b) {} }\nA(1);", "Expected 2 arguments but got 1.", 2)
    expect_runtime_error("class A {}\nA(1);", "Expected 0 arguments but got 1.", 2)


def test_undefined_property():
    expect_runtime_error("class A {}\nvar a = A();\nprint a.missing;", "Undefined property 'missing'.", 3)


def test_undefined_super_method():
    source = "class A {}\nclass B < A { m() { return super.nope(); } }\nB().m();"
    expect_runtime_error(source, "Undefined property 'nope'.", 2)


def test_property_access_on_non_instance():
    expect_runtime_error("print 1.x;", "Only instances have properties.", 1)
    expect_runtime_error('var s = "str";\ns.x = 1;', "Only instances have fields.", 2)


def test_superclass_must_be_a_class():
    expect_runtime_error('var NotClass = "x";\nclass B < NotClass {}', "Superclass must be a class.", 2)


if __name__ == "__main__":
    test_instances_have_independent_fields()
    test_initializer_yields_instance()
    test_bare_return_in_initializer_and_direct_init_call()
    test_bound_methods_remember_their_instance()
    test_each_access_binds_a_fresh_method()
    test_fields_shadow_methods()
    test_methods_can_reference_their_class()
    test_closures_in_methods_capture_this()
    test_inheritance_and_super()
    test_constructor_arity()
    test_undefined_property()
    test_undefined_super_method()
    test_property_access_on_non_instance()
    test_superclass_must_be_a_class()
    print("ok")
