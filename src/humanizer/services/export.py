from __future__ import annotations

import html
from pathlib import PurePath

from humanizer.services.markdown import preserve_math_and_strip_markdown

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    <script id="MathJax-script" async src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"></script>
    <script>
        window.MathJax = {{
            tex: {{
                inlineMath: [['\\\\(', '\\\\)']],
                displayMath: [['\\\\[', '\\\\]']],
                processEscapes: true,
                processEnvironments: true
            }},
            options: {{
                skipHtmlTags: ['script', 'noscript', 'style', 'textarea', 'pre']
            }}
        }};
    </script>
    <style>
        body {{
            font-family: 'Georgia', serif;
            line-height: 1.6;
            max-width: 800px;
            margin: 40px auto;
            padding: 20px;
            color: #333;
        }}
        .math-content {{
            font-size: 16px;
        }}
        @media print {{
            body {{ margin: 0; }}
        }}
    </style>
</head>
<body>
    <div class="math-content">
        {body}
    </div>
</body>
</html>"""

_LATEX_TEMPLATE = r"""\documentclass{{article}}
\usepackage[utf8]{{inputenc}}
\usepackage{{amsmath}}
\usepackage{{amsfonts}}
\usepackage{{amssymb}}
\usepackage{{geometry}}
\geometry{{margin=1in}}

\title{{{title}}}
\author{{}}
\date{{}}

\begin{{document}}

\maketitle

{body}

\end{{document}}"""


def document_title(filename: str) -> str:
    return PurePath(filename).stem or filename


def export_html(content: str, filename: str) -> str:
    cleaned = preserve_math_and_strip_markdown(content)
    body = html.escape(cleaned, quote=False).replace("\n", "<br>")
    return _HTML_TEMPLATE.format(title=html.escape(document_title(filename)), body=body)


def export_latex(content: str, filename: str) -> str:
    cleaned = preserve_math_and_strip_markdown(content)
    return _LATEX_TEMPLATE.format(title=document_title(filename), body=cleaned)


def with_extension(filename: str, extension: str) -> str:
    return f"{document_title(filename)}.{extension}"
