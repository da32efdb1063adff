#!/usr/bin/env python3
"""
引用解析器 - 为每个声明找出它引用的其他声明

对声明文本中的标识符做过滤：关键字、字面量、成员名（. 和 -> 之后）、
局部绑定的名字（参数、函数体内声明的变量）都不算引用。剩下的名字在声明表中查找：
找到则成为依赖边，找不到则记为 UnresolvedExternal。
"""

import bisect
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Set, Tuple

from parser.declaration import Declaration, DeclarationKind, TranslationUnit
from parser.declaration_extractor import DEFINE_RE, parse_parameters
from parser.errors import AmbiguousOverloadError, UnresolvedExternal
from parser.keywords import (
    DEFAULT_STDLIB_NAMES, QUALIFIER_KEYWORDS, TAG_KEYWORDS, TYPE_KEYWORDS, is_keyword
)
from parser.scanner import ScanResult
from parser.tokens import Token, TokenKind

logger = logging.getLogger(__name__)

WORD_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

# 预处理行中的注释和字符串/字符字面量，匹配名字前替换为空格
DIRECTIVE_NOISE_RE = re.compile(
    r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'|/\*.*?\*/|//[^\n]*', re.S)

# 这些关键字后面的 '(' 里可以出现声明
DECLARING_PARENS = {'for', 'catch', 'if', 'switch', 'while'}

CONTROL_KEYWORDS = {'if', 'while', 'switch', 'for', 'return', 'sizeof'}


@dataclass
class Resolution:
    """引用解析结果"""
    unit: TranslationUnit
    unresolved: List[UnresolvedExternal] = field(default_factory=list)
    ambiguous_overloads: List[AmbiguousOverloadError] = field(default_factory=list)

    def unresolved_for(self, decl_id: str) -> List[UnresolvedExternal]:
        return [u for u in self.unresolved if u.referenced_by == decl_id]

    def overloads_for(self, decl_id: str) -> List[AmbiguousOverloadError]:
        return [a for a in self.ambiguous_overloads if a.referenced_by == decl_id]


def _skip_template_arguments(tokens: List[Token], index: int) -> Optional[int]:
    """tokens[index] 为 '<'；像模板实参时返回 '>' 之后的下标，否则返回None"""
    depth = 0
    for k in range(index, len(tokens)):
        tok = tokens[k]
        if tok.kind != TokenKind.PUNCTUATION:
            continue
        if tok.text == '<':
            depth += 1
        elif tok.text == '>':
            depth -= 1
        elif tok.text == '>>':
            depth -= 2
        elif tok.text in (';', '{', '}', ')', '&&', '||', '=='):
            return None
        if depth <= 0:
            return k + 1
    return None


def local_declarators(tokens: List[Token], index: int) -> List[int]:
    """
    如果 tokens[index] 开始一条局部声明，返回被声明名字所在的下标

    识别形如 `类型 [*&]* 名字 (= ; , [ ) :)` 的语句，例如
    `Node* current = self->head;`、`int i, j, k;`、`struct node_t* next;`。
    """
    n = len(tokens)
    k = index
    while k < n and tokens[k].text in QUALIFIER_KEYWORDS:
        k += 1
    if k >= n:
        return []

    first = tokens[k]
    if first.text in TAG_KEYWORDS:
        k += 1
        if k < n and tokens[k].text in ('class', 'struct'):
            k += 1
        if k < n and tokens[k].is_name:
            k += 1
        if k < n and tokens[k].is_punct('{'):
            return []
    elif first.text in TYPE_KEYWORDS:
        while k < n and (tokens[k].text in TYPE_KEYWORDS or tokens[k].text in QUALIFIER_KEYWORDS):
            k += 1
    elif first.is_name or first.is_punct('::'):
        if first.is_punct('::'):
            k += 1
        k += 1
        while k + 1 < n and tokens[k].is_punct('::') and tokens[k + 1].is_name:
            k += 2
        if k < n and tokens[k].is_punct('<'):
            after = _skip_template_arguments(tokens, k)
            if after is None:
                return []
            k = after
    else:
        return []

    declared = []
    while k < n:
        while k < n and (tokens[k].text in ('*', '&', '&&') or tokens[k].text in QUALIFIER_KEYWORDS):
            k += 1
        if k >= n:
            break
        if tokens[k].is_punct('(') and k + 2 < n and tokens[k + 1].text in ('*', '&'):
            # 局部函数指针 int (*fp)(int)
            name_index = next((m for m in range(k + 2, n) if tokens[m].is_name or tokens[m].is_punct(')')), None)
            if name_index is None or not tokens[name_index].is_name:
                break
            # foo(*p) 是调用，函数指针的 ')' 后面还有参数表或数组维度
            if name_index + 2 >= n or not tokens[name_index + 1].is_punct(')') \
                    or tokens[name_index + 2].text not in ('(', '['):
                break
            declared.append(name_index)
            k = name_index + 1
        elif tokens[k].is_name:
            following = tokens[k + 1] if k + 1 < n else None
            # '(' 之前的名字是成员函数或直接初始化的变量
            if following is None or following.text not in ('=', ';', ',', '[', ')', ':', '{', '('):
                break
            if following.is_punct(':') and k + 2 < n and tokens[k + 2].is_punct(':'):
                break
            declared.append(k)
            k += 1
        else:
            break

        # 跳过数组维度和初始化器，直到同层的 ',' 或语句结束
        depth = 0
        while k < n:
            tok = tokens[k]
            if tok.kind == TokenKind.PUNCTUATION:
                if tok.text in ('(', '[', '{'):
                    depth += 1
                elif tok.text in (')', ']', '}'):
                    if depth == 0:
                        return declared
                    depth -= 1
                    # 成员函数体结束
                    if tok.text == '}' and depth == 0 and (
                            k + 1 >= n or tokens[k + 1].text not in (',', ';')):
                        return declared
                elif depth == 0 and tok.text in (';', ':'):
                    return declared
                elif depth == 0 and tok.text == ',':
                    break
            k += 1
        if k >= n or not tokens[k].is_punct(','):
            break
        k += 1
    return declared


def body_parameters(tokens: List[Token], open_index: int) -> Optional[Tuple[int, Set[str]]]:
    """
    tokens[open_index] 为 '('；如果它是成员函数或 lambda 的参数表（后面紧跟函数体），
    返回 (')' 的下标, 参数名集合)，否则返回None

    例如 `void print(float value) const {`、`[](double x) -> double {`。
    """
    if open_index > 0 and tokens[open_index - 1].text in CONTROL_KEYWORDS:
        return None
    depth = 0
    close = None
    for k in range(open_index, len(tokens)):
        if tokens[k].is_punct('('):
            depth += 1
        elif tokens[k].is_punct(')'):
            depth -= 1
            if depth == 0:
                close = k
                break
    if close is None:
        return None
    for k in range(close + 1, min(close + 16, len(tokens))):
        tok = tokens[k]
        if tok.is_punct('{'):
            _, names = parse_parameters(tokens[open_index + 1:close])
            return close, set(names)
        if tok.kind == TokenKind.PUNCTUATION and tok.text not in ('->', '*', '&', '::', '<', '>'):
            return None
    return None


class ReferenceResolver:
    """引用解析器"""

    def __init__(self, scan_result: ScanResult, unit: TranslationUnit,
                 stdlib_names: Optional[Iterable[str]] = None):
        self.unit = unit
        self.tokens = scan_result.significant()
        self._starts = [t.start for t in self.tokens]
        self.stdlib_names: Set[str] = set(DEFAULT_STDLIB_NAMES if stdlib_names is None else stdlib_names)
        self._macro_names = [d.name for d in unit if d.kind == DeclarationKind.MACRO]

    def resolve(self) -> Resolution:
        """
        解析所有声明的引用

        Returns:
            Resolution，其中的声明已经设置好 dependencies
        """
        resolved = []
        unresolved: List[UnresolvedExternal] = []
        overloads: List[AmbiguousOverloadError] = []
        for decl in self.unit:
            header_refs, body_refs = self._references(decl)
            dependencies: List[str] = []
            header_dependencies: List[str] = []
            seen_unresolved = set()
            for name, in_header in [(n, True) for n in header_refs] + [(n, False) for n in body_refs]:
                ids = self._lookup(name, decl, overloads)
                if ids is None:
                    if name not in seen_unresolved:
                        seen_unresolved.add(name)
                        unresolved.append(UnresolvedExternal(name, decl.id, name in self.stdlib_names))
                    continue
                for dep in ids:
                    if dep not in dependencies:
                        dependencies.append(dep)
                    if in_header and dep not in header_dependencies:
                        header_dependencies.append(dep)
            logger.debug(f"{decl.id} 依赖: {dependencies}")
            resolved.append(replace(
                decl, dependencies=frozenset(dependencies),
                header_dependencies=frozenset(header_dependencies),
            ))

        logger.info(f"引用解析完成: {len(unresolved)} 个外部引用, {len(overloads)} 处重载歧义")
        for error in overloads:
            logger.warning(str(error))
        return Resolution(self.unit.replace_declarations(resolved), unresolved, overloads)

    def _lookup(self, name: str, decl: Declaration,
                overloads: List[AmbiguousOverloadError]) -> Optional[List[str]]:
        """按名字查找；返回依赖ID列表（可能为空，例如递归调用自身），没有匹配时返回None"""
        matches = self.unit.lookup(name)
        if not matches:
            return None
        candidates = [d for d in matches if d.id != decl.id]
        functions = [d for d in candidates if d.kind == DeclarationKind.FUNCTION]
        # 同一签名的重复定义不算重载歧义
        signatures = {d.signature.parameter_types for d in functions}
        if len(signatures) > 1 and len(functions) == len(candidates):
            error = AmbiguousOverloadError(name, [d.id for d in functions], decl.id)
            if all(e.key() != error.key() for e in overloads):
                overloads.append(error)
        return [d.id for d in candidates]

    def _tokens_of(self, decl: Declaration) -> List[Token]:
        lo = bisect.bisect_left(self._starts, decl.start)
        hi = bisect.bisect_left(self._starts, decl.end)
        return self.tokens[lo:hi]

    def _references(self, decl: Declaration):
        """返回 (声明头中的引用, 声明体中的引用)，都按首次出现排序"""
        if decl.kind == DeclarationKind.MACRO:
            return [], self._macro_references(decl.text, decl)

        own_names = set(decl.names)
        scopes: List[Set[str]] = [set(decl.parameters)]
        header_refs: List[str] = []
        body_refs: List[str] = []
        tokens = self._tokens_of(decl)
        bindings: Set[int] = set()
        statement_start = True
        previous: Optional[Token] = None
        # 成员函数或 lambda 的参数表：(')' 的下标, 参数名)
        pending: Optional[Tuple[int, Set[str]]] = None

        for index, tok in enumerate(tokens):
            refs = header_refs if tok.start < decl.header_end else body_refs
            if tok.kind == TokenKind.PREPROCESSOR:
                for name in self._macro_references(tok.text, decl):
                    if name not in refs:
                        refs.append(name)
                continue
            if tok.kind == TokenKind.PUNCTUATION:
                if tok.text == '{':
                    if pending is not None and pending[0] < index:
                        scopes.append(set(pending[1]))
                        pending = None
                    else:
                        scopes.append(set())
                    statement_start = True
                elif tok.text == '}':
                    if len(scopes) > 1:
                        scopes.pop()
                    statement_start = True
                elif tok.text == ';':
                    statement_start = True
                elif tok.text == '(' and previous is not None and (
                        previous.text in DECLARING_PARENS or previous.is_punct(']')):
                    statement_start = True
                else:
                    statement_start = False
                if tok.text == '(' and pending is None:
                    pending = body_parameters(tokens, index)
                previous = tok
                continue

            # 函数头中的名字已由 parameters 绑定
            if statement_start and (not decl.is_function or tok.start >= decl.header_end):
                bindings.update(local_declarators(tokens, index))
            statement_start = False

            if tok.kind != TokenKind.IDENTIFIER:
                previous = tok
                continue

            name = tok.text
            if index in bindings:
                scopes[-1].add(name)
            elif pending is not None and index < pending[0] and name in pending[1]:
                pass
            elif self._is_reference(tokens, index, previous, scopes, own_names):
                if name not in refs:
                    refs.append(name)
            previous = tok
        return header_refs, body_refs

    def _is_reference(self, tokens: List[Token], index: int, previous: Optional[Token],
                      scopes: List[Set[str]], own_names: Set[str]) -> bool:
        name = tokens[index].text
        if previous is not None and previous.text in ('.', '->', '.*', '->*'):
            return False
        if previous is not None and previous.is_punct('::') and index >= 2:
            qualifier = tokens[index - 2]
            # std::sqrt 之类：限定符不在本单元中，只记录限定符
            if qualifier.is_name and not self.unit.lookup(qualifier.text):
                return False
        if any(name in scope for scope in scopes):
            return False
        if name in own_names:
            return False
        # 标签 retry: （不是 ::）
        following = tokens[index + 1] if index + 1 < len(tokens) else None
        if (following is not None and following.is_punct(':')
                and (previous is None or previous.text in (';', '{', '}'))):
            return False
        return True

    def _macro_references(self, text: str, decl: Declaration) -> List[str]:
        """宏体（及函数体内的预处理行）按词边界匹配名字，不做展开"""
        body = text
        match = DEFINE_RE.match(text)
        if match:
            body = text[match.end():]
            if match.group(2) is not None:
                close = body.find(')')
                body = body[close + 1:] if close != -1 else ''
        body = DIRECTIVE_NOISE_RE.sub(' ', body)
        parameters = set(decl.parameters) if decl.kind == DeclarationKind.MACRO else set()
        refs = []
        for word in WORD_RE.findall(body):
            if is_keyword(word) or word in parameters or word in decl.names or word in refs:
                continue
            if decl.kind != DeclarationKind.MACRO and word not in self._macro_names:
                continue
            refs.append(word)
        return refs


def resolve_references(scan_result: ScanResult, unit: TranslationUnit,
                       stdlib_names: Optional[Iterable[str]] = None) -> Resolution:
    """解析引用（便捷函数）"""
    return ReferenceResolver(scan_result, unit, stdlib_names).resolve()
