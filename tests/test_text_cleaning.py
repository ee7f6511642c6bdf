from humanizer.services.markdown import preserve_math_and_strip_markdown, strip_markdown
from humanizer.services.text_cleaning import (
    protect_math_formulas,
    remove_dollar_signs,
    restore_math_formulas,
)


def test_remove_dollar_signs_rewrites_amounts() -> None:
    assert remove_dollar_signs("It costs $15 today") == "It costs 15 dollars today"
    assert remove_dollar_signs("Pay $1,500.50 now") == "Pay 1,500.50 dollars now"
    assert remove_dollar_signs("Pay $1500 now") == "Pay 1500 dollars now"
    assert remove_dollar_signs("Revenue was $2.5 million") == "Revenue was 2.5 dollars million"


def test_remove_dollar_signs_handles_variables_and_bare_signs() -> None:
    assert remove_dollar_signs("a price of $N") == "a price of N dollars"
    assert remove_dollar_signs("a $ sign") == "a dollars sign"
    assert "$" not in remove_dollar_signs("$$x$$ and $y$")


def test_protect_and_restore_math_formulas() -> None:
    text = r"Area is $x^2$ and \[a + b = c\] with \(y\) inline."

    protected, formulas = protect_math_formulas(text)

    assert formulas == [r"\[a + b = c\]", r"\(y\)", "$x^2$"]
    assert "$" not in protected
    assert "__MATH_BLOCK_000__" in protected
    assert restore_math_formulas(protected, formulas) == text


def test_protect_math_leaves_money_alone() -> None:
    text = "Tickets were $5 and $6 last year."

    protected, formulas = protect_math_formulas(text)

    assert formulas == []
    assert protected == text


def test_restore_ignores_unknown_placeholders() -> None:
    assert restore_math_formulas("keep __MATH_BLOCK_007__", ["$x$"]) == "keep __MATH_BLOCK_007__"


def test_restore_handles_more_than_a_thousand_formulas() -> None:
    text = " ".join(f"$x_{index}$" for index in range(1002))

    protected, formulas = protect_math_formulas(text)

    assert len(formulas) == 1002
    assert "__MATH_BLOCK_1001__" in protected
    assert restore_math_formulas(protected, formulas) == text


def test_strip_markdown_removes_formatting() -> None:
    text = "# Title\n\nSome **bold** and *italic* text with `code` and [a link](http://x).\n\n- item"

    assert strip_markdown(text) == "Title\n\nSome bold and italic text with code and a link.\n\n• item"


def test_strip_markdown_unwraps_code_blocks() -> None:
    assert strip_markdown("```python\nprint(1)\n```") == "print(1)"


def test_preserve_math_normalises_dollar_delimiters() -> None:
    text = "**Result**: $$x^2$$ and $y_1$"

    assert preserve_math_and_strip_markdown(text) == r"Result: \[x^2\] and \(y_1\)"


def test_preserve_math_drops_stray_token_delimiters() -> None:
    text = "Literal \x00MATH7\x00 next to $y_1$"

    assert preserve_math_and_strip_markdown(text) == r"Literal MATH7 next to \(y_1\)"
