from __future__ import annotations

import re
from typing import Dict, List, Optional

from gallery_converter.models.constructs import InlineTagConstruct, positive_ints
from gallery_converter.migrators.collaborators import MediaLibrary

# [gallery ...] but not [[gallery]] (escaped) nor [gallery_other]
_GALLERY_SHORTCODE = re.compile(r"(?<!\[)\[gallery(?=[\s\]/])(?P<atts>[^\]]*)\]")

_ATTR = re.compile(
    r"""([\w-]+)\s*=\s*"([^"]*)"(?:\s|$)"""
    r"""|([\w-]+)\s*=\s*'([^']*)'(?:\s|$)"""
    r"""|([\w-]+)\s*=\s*([^\s'"]+)(?:\s|$)"""
    r"""|"([^"]*)"(?:\s|$)"""
    r"""|'([^']*)'(?:\s|$)"""
    r"""|(\S+)(?:\s|$)"""
)


def parse_shortcode_attrs(text: str) -> Dict[str, str]:
    """Analisa os atributos de um shortcode no formato chave=valor.

    Aceita valores entre aspas duplas, aspas simples ou sem aspas. As chaves são
    normalizadas para minúsculas e átomos posicionais (sem ``=``) são ignorados.

    Args:
        text (str): O trecho do shortcode após o nome, por exemplo ``' ids="1,2" columns=4'``.

    Returns:
        dict: Um dicionário com os atributos nomeados.
    """
    attrs: Dict[str, str] = {}
    text = re.sub(r"[\u00a0\u200b]", " ", text or "")
    for m in _ATTR.finditer(text):
        if m.group(1):
            attrs[m.group(1).lower()] = m.group(2)
        elif m.group(3):
            attrs[m.group(3).lower()] = m.group(4)
        elif m.group(5):
            attrs[m.group(5).lower()] = m.group(6)
    return attrs


def _split_ids(value: Optional[str]) -> List[int]:
    if not value:
        return []
    return positive_ints([part.strip() for part in value.split(",")])


def _int_attr(value: Optional[str], default: int) -> int:
    try:
        return abs(int(value)) if value not in (None, "") else default
    except ValueError:
        return default


def locate_inline_tags(text: str) -> List[InlineTagConstruct]:
    """Localiza os shortcodes ``[gallery]`` de um conteúdo, na ordem em que aparecem.

    Args:
        text (str): O conteúdo bruto do documento.

    Returns:
        list: Uma lista de :class:`InlineTagConstruct` com os trechos encontrados
              e seus atributos já normalizados (``columns=3``, ``size="thumbnail"``
              e ``id=0`` quando ausentes).
    """
    constructs: List[InlineTagConstruct] = []
    for m in _GALLERY_SHORTCODE.finditer(text or ""):
        attrs = parse_shortcode_attrs(m.group("atts").rstrip("/"))
        constructs.append(
            InlineTagConstruct(
                raw_text=m.group(0),
                start=m.start(),
                end=m.end(),
                attributes=attrs,
                id_list=_split_ids(attrs.get("ids")),
                include_list=_split_ids(attrs.get("include")),
                exclude_list=_split_ids(attrs.get("exclude")),
                columns=_int_attr(attrs.get("columns"), 3),
                size_slug=(attrs.get("size") or "thumbnail").strip(),
                gallery_scope_id=_int_attr(attrs.get("id"), 0),
            )
        )
    return constructs


def has_inline_tags(text: str) -> bool:
    return bool(_GALLERY_SHORTCODE.search(text or ""))


def resolve_inline_ids(construct: InlineTagConstruct, document_id: Optional[int], library: MediaLibrary) -> List[int]:
    """Resolve os IDs de mídia de um shortcode.

    Uma lista ``ids`` explícita é usada como está. Caso contrário, a biblioteca é
    consultada pelos anexos filhos do ``id`` informado no shortcode ou, na falta
    dele, do próprio documento, filtrados por ``include`` e ``exclude``.

    Args:
        construct (InlineTagConstruct): O shortcode localizado.
        document_id (int): O documento que contém o shortcode, se conhecido.
        library (MediaLibrary): A biblioteca de mídia de origem.

    Returns:
        list: Os IDs de mídia, na ordem retornada.
    """
    if construct.id_list:
        return list(construct.id_list)
    parent_id = construct.gallery_scope_id or document_id or 0
    if not parent_id:
        return []
    return library.query_child_media(
        parent_id,
        include=construct.include_list or None,
        exclude=construct.exclude_list or None,
    )
