# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from lxml import etree
from app.utils.params import only_digits

"""
Leitura do XML da NF-e (layout 4.0) para as tabelas nfe_document / nfe_item / nfe_payment.


- Aceita `nfeProc/NFe/infNFe` ou `NFe/infNFe`; o namespace do portal fiscal é ignorado.
- Chave: últimos 44 dígitos do atributo `Id` do infNFe (ou `chNFe`); precisa ter 44 dígitos.
- Protocolo (`protNFe/infProt`) só existe quando o XML vem com `nfeProc`.
- Campos numéricos viram Decimal; ausentes ficam None.
"""

CHAVE_LEN = 44

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


class NFeParseError(ValueError):
    pass


@dataclass
class NFeDocument:
    chave: str
    document: Dict[str, Any]
    items: List[Dict[str, Any]] = field(default_factory=list)
    payments: List[Dict[str, Any]] = field(default_factory=list)


def _strip_namespaces(root: etree._Element) -> None:
    for el in root.iter():
        if isinstance(el.tag, str):
            el.tag = etree.QName(el).localname

def _text(el: Optional[etree._Element], path: str) -> Optional[str]:
    if el is None:
        return None
    value = el.findtext(path)
    if value is None:
        return None
    value = value.strip()
    return value or None

def _number(el: Optional[etree._Element], path: str) -> Optional[Decimal]:
    value = _text(el, path)
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None

def _digits(el: Optional[etree._Element], path: str) -> Optional[str]:
    return only_digits(_text(el, path)) or None

def _first_child(el: Optional[etree._Element]) -> Optional[etree._Element]:
    if el is None:
        return None
    return next((c for c in el if isinstance(c.tag, str)), None)


def _find_inf_nfe(root: etree._Element) -> Optional[etree._Element]:
    if root.tag == "nfeProc":
        return root.find("NFe/infNFe")
    if root.tag == "NFe":
        return root.find("infNFe")
    return None

def _chave(inf: etree._Element) -> Optional[str]:
    chave = only_digits(inf.get("Id"))[-CHAVE_LEN:] or only_digits(inf.findtext("chNFe"))
    return chave if len(chave) == CHAVE_LEN else None


def _document(root: etree._Element, inf: etree._Element, chave: str, xml: str) -> Dict[str, Any]:
    ide, emit, dest = inf.find("ide"), inf.find("emit"), inf.find("dest")
    total = inf.find("total/ICMSTot")
    transp = inf.find("transp")
    transporta = transp.find("transporta") if transp is not None else None
    vol = transp.find("vol") if transp is not None else None
    inf_adic = inf.find("infAdic")
    obs = inf_adic.find("obsCont") if inf_adic is not None else None
    intermed = inf.find("infIntermed")
    prot = root.find("protNFe/infProt") if root.tag == "nfeProc" else None

    return {
        "chave_nfe": chave,
        "n_nf": _text(ide, "nNF"),
        "serie": _text(ide, "serie"),
        "mod": _text(ide, "mod"),
        "tp_nf": _text(ide, "tpNF"),
        "nat_op": _text(ide, "natOp"),
        "dh_emi": _text(ide, "dhEmi"),
        "dh_sai_ent": _text(ide, "dhSaiEnt"),
        "tpamb": _text(ide, "tpAmb"),
        "indfinal": _text(ide, "indFinal"),
        "indpres": _text(ide, "indPres"),
        "indintermed": _text(ide, "indIntermed"),
        "nfref": _text(ide, "NFref/refNFe"),
        "cstat": _text(prot, "cStat"),
        "xmotivo": _text(prot, "xMotivo"),
        "nprot": _text(prot, "nProt"),
        "dhrecbto": _text(prot, "dhRecbto"),
        "cnpj_emit": _digits(emit, "CNPJ"),
        "xnome_emit": _text(emit, "xNome"),
        "ie_emit": _text(emit, "IE"),
        "crt_emit": _text(emit, "CRT"),
        "uf_emit": _text(emit, "enderEmit/UF"),
        "municipio_emit": _text(emit, "enderEmit/xMun"),
        "cnpj_dest": _digits(dest, "CNPJ"),
        "xnome_dest": _text(dest, "xNome"),
        "ie_dest": _text(dest, "IE"),
        "indiedest": _text(dest, "indIEDest"),
        "uf_dest": _text(dest, "enderDest/UF"),
        "municipio_dest": _text(dest, "enderDest/xMun"),
        "vprod": _number(total, "vProd"),
        "vicms": _number(total, "vICMS"),
        "vbc": _number(total, "vBC"),
        "vpis": _number(total, "vPIS"),
        "vcofins": _number(total, "vCOFINS"),
        "vnf": _number(total, "vNF"),
        "vtottrib": _number(total, "vTotTrib"),
        "infcpl": _text(inf_adic, "infCpl"),
        "infadfisco": _text(inf_adic, "infAdFisco"),
        "obscont_xcampo": obs.get("xCampo") if obs is not None else None,
        "obscont_xtexto": _text(obs, "xTexto"),
        "intermed_cnpj": _digits(intermed, "CNPJ"),
        "intermed_id": _text(intermed, "idCadIntTran"),
        "modfrete": _text(transp, "modFrete"),
        "transp_cnpj": _digits(transporta, "CNPJ"),
        "transp_xnome": _text(transporta, "xNome"),
        "transp_uf": _text(transporta, "UF"),
        "transp_xmun": _text(transporta, "xMun"),
        "vol_qvol": _number(vol, "qVol"),
        "vol_pesol": _number(vol, "pesoL"),
        "vol_pesob": _number(vol, "pesoB"),
        "xml_raw": xml,
    }


def _tax(imposto: Optional[etree._Element], group: str, rate: str, amount: str) -> Dict[str, Any]:
    """Primeiro subgrupo do imposto (ex.: ICMS00, PISAliq) com tipo, CST e valores."""
    node = _first_child(imposto.find(group)) if imposto is not None else None
    prefix = group.lower()
    return {
        f"{prefix}_tipo": node.tag if node is not None else None,
        f"{prefix}_cst": _text(node, "CST"),
        f"{prefix}_vbc": _number(node, "vBC"),
        f"{prefix}_{rate.lower()}": _number(node, rate),
        f"{prefix}_{amount.lower()}": _number(node, amount),
    }

def _item(det: etree._Element) -> Dict[str, Any]:
    prod, imposto = det.find("prod"), det.find("imposto")
    icms = _first_child(imposto.find("ICMS")) if imposto is not None else None
    n_item = det.get("nItem")
    return {
        "n_item": int(n_item) if n_item and n_item.isdigit() else None,
        "cprod": _text(prod, "cProd"),
        "xprod": _text(prod, "xProd"),
        "ncm": _text(prod, "NCM"),
        "cfop": _text(prod, "CFOP"),
        "cest": _text(prod, "CEST"),
        "ucom": _text(prod, "uCom"),
        "qcom": _number(prod, "qCom"),
        "vuncom": _number(prod, "vUnCom"),
        "vprod": _number(prod, "vProd"),
        "xped": _text(prod, "xPed"),
        "vtottrib_item": _number(imposto, "vTotTrib"),
        **_tax(imposto, "ICMS", "pICMS", "vICMS"),
        "icms_csosn": _text(icms, "CSOSN"),
        "icms_orig": _text(icms, "orig"),
        "icms_modbc": _text(icms, "modBC"),
        **_tax(imposto, "PIS", "pPIS", "vPIS"),
        **_tax(imposto, "COFINS", "pCOFINS", "vCOFINS"),
        "infadprod": _text(det, "infAdProd"),
    }

def _payment(det_pag: etree._Element) -> Dict[str, Any]:
    card = det_pag.find("card")
    return {
        "tpag": _text(det_pag, "tPag"),
        "vpag": _number(det_pag, "vPag"),
        "indpag": _text(det_pag, "indPag"),
        "card_cnpj": _digits(card, "CNPJ"),
        "card_tband": _text(card, "tBand"),
        "card_tpintegra": _text(card, "tpIntegra"),
        "card_caut": _text(card, "cAut"),
    }


def parse_nfe(xml: str) -> NFeDocument:
    """Converte o XML em linhas prontas para gravar; `NFeParseError` quando não for uma NF-e válida."""
    try:
        root = etree.fromstring(xml.encode("utf-8"), parser=_PARSER)
    except etree.XMLSyntaxError as exc:
        raise NFeParseError(f"XML inválido: {exc}") from exc
    _strip_namespaces(root)

    inf = _find_inf_nfe(root)
    if inf is None:
        raise NFeParseError("Não foi possível localizar infNFe no XML (layout não reconhecido)")
    chave = _chave(inf)
    if chave is None:
        raise NFeParseError("Chave da NFe não encontrada (44 dígitos)")

    return NFeDocument(
        chave=chave,
        document=_document(root, inf, chave, xml),
        items=[_item(det) for det in inf.findall("det")],
        payments=[_payment(p) for p in inf.findall("pag/detPag")],
    )
