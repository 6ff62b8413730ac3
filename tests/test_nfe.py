# Copyright (c) 2025 Alexandre Tavares
# Licensed under the Creative Commons Attribution-NonCommercial 4.0 International (CC BY-NC 4.0)
# See the LICENSE file in the project root for more information.
from decimal import Decimal
import pytest
from app.services.nfe_parser import NFeParseError, parse_nfe

CHAVE = "35250112345678000195550010000012341000012345"

NFE_PROC = f"""<?xml version="1.0" encoding="UTF-8"?>
<nfeProc xmlns="http://www.portalfiscal.inf.br/nfe" versao="4.00">
  <NFe>
    <infNFe Id="NFe{CHAVE}" versao="4.00">
      <ide>
        <natOp>VENDA</natOp><mod>55</mod><serie>1</serie><nNF>1234</nNF>
        <dhEmi>2025-01-15T10:30:00-03:00</dhEmi><tpNF>1</tpNF><tpAmb>1</tpAmb>
        <indFinal>1</indFinal><indPres>1</indPres>
      </ide>
      <emit>
        <CNPJ>12.345.678/0001-95</CNPJ><xNome>Fornecedor LTDA</xNome><IE>123</IE><CRT>3</CRT>
        <enderEmit><xMun>São Paulo</xMun><UF>SP</UF></enderEmit>
      </emit>
      <dest><CNPJ>98765432000110</CNPJ><xNome>Loja Centro</xNome><indIEDest>1</indIEDest></dest>
      <det nItem="1">
        <prod>
          <cProd>A1</cProd><xProd>Camiseta</xProd><NCM>61091000</NCM><CFOP>5102</CFOP>
          <uCom>UN</uCom><qCom>2.0000</qCom><vUnCom>50.00</vUnCom><vProd>100.00</vProd>
        </prod>
        <imposto>
          <vTotTrib>12.50</vTotTrib>
          <ICMS><ICMS00><orig>0</orig><CST>00</CST><modBC>3</modBC><vBC>100.00</vBC><pICMS>18.00</pICMS><vICMS>18.00</vICMS></ICMS00></ICMS>
          <PIS><PISAliq><CST>01</CST><vBC>100.00</vBC><pPIS>1.65</pPIS><vPIS>1.65</vPIS></PISAliq></PIS>
          <COFINS><COFINSAliq><CST>01</CST><vBC>100.00</vBC><pCOFINS>7.60</pCOFINS><vCOFINS>7.60</vCOFINS></COFINSAliq></COFINS>
        </imposto>
      </det>
      <det nItem="2">
        <prod><cProd>B2</cProd><xProd>Boné</xProd><qCom>1</qCom><vUnCom>30.00</vUnCom><vProd>30.00</vProd></prod>
        <imposto><ICMS><ICMSSN102><orig>0</orig><CSOSN>102</CSOSN></ICMSSN102></ICMS></imposto>
      </det>
      <total><ICMSTot><vBC>100.00</vBC><vICMS>18.00</vICMS><vProd>130.00</vProd><vNF>130.00</vNF></ICMSTot></total>
      <transp><modFrete>9</modFrete></transp>
      <pag>
        <detPag><tPag>03</tPag><vPag>100.00</vPag><card><CNPJ>11.222.333/0001-44</CNPJ><tBand>01</tBand><cAut>XYZ</cAut></card></detPag>
        <detPag><tPag>01</tPag><vPag>30.00</vPag></detPag>
      </pag>
      <infAdic><infCpl>Obrigado</infCpl><obsCont xCampo="Pedido"><xTexto>PED-1</xTexto></obsCont></infAdic>
    </infNFe>
  </NFe>
  <protNFe versao="4.00">
    <infProt><tpAmb>1</tpAmb><dhRecbto>2025-01-15T10:31:00-03:00</dhRecbto><nProt>135250000000001</nProt><cStat>100</cStat><xMotivo>Autorizado o uso da NF-e</xMotivo></infProt>
  </protNFe>
</nfeProc>"""


def test_parse_nfe_proc_document():
    nfe = parse_nfe(NFE_PROC)
    doc = nfe.document
    assert nfe.chave == CHAVE
    assert doc["chave_nfe"] == CHAVE
    assert doc["n_nf"] == "1234"
    assert doc["cnpj_emit"] == "12345678000195"
    assert doc["uf_emit"] == "SP"
    assert doc["vnf"] == Decimal("130.00")
    assert doc["cstat"] == "100"
    assert doc["nprot"] == "135250000000001"
    assert doc["obscont_xcampo"] == "Pedido"
    assert doc["obscont_xtexto"] == "PED-1"
    assert doc["vol_qvol"] is None
    assert doc["xml_raw"] == NFE_PROC


def test_parse_nfe_items_and_taxes():
    first, second = parse_nfe(NFE_PROC).items
    assert first["n_item"] == 1
    assert first["qcom"] == Decimal("2.0000")
    assert first["icms_tipo"] == "ICMS00"
    assert first["icms_picms"] == Decimal("18.00")
    assert first["pis_tipo"] == "PISAliq"
    assert first["cofins_vcofins"] == Decimal("7.60")
    assert second["icms_tipo"] == "ICMSSN102"
    assert second["icms_csosn"] == "102"
    assert second["pis_tipo"] is None


def test_parse_nfe_payments():
    card, cash = parse_nfe(NFE_PROC).payments
    assert card["card_cnpj"] == "11222333000144"
    assert card["card_caut"] == "XYZ"
    assert cash["vpag"] == Decimal("30.00")
    assert cash["card_tband"] is None


def test_parse_bare_nfe_without_protocol():
    start = NFE_PROC.index("<NFe>")
    end = NFE_PROC.index("</NFe>") + len("</NFe>")
    bare = NFE_PROC[start:end].replace("<NFe>", '<NFe xmlns="http://www.portalfiscal.inf.br/nfe">', 1)
    nfe = parse_nfe(bare)
    assert nfe.chave == CHAVE
    assert nfe.document["cstat"] is None


def test_parse_rejects_invalid_xml():
    with pytest.raises(NFeParseError, match="XML inválido"):
        parse_nfe("<nfeProc><NFe>")


def test_parse_rejects_unknown_layout():
    with pytest.raises(NFeParseError, match="infNFe"):
        parse_nfe("<CTe><infCte/></CTe>")


def test_parse_rejects_short_chave():
    with pytest.raises(NFeParseError, match="44 dígitos"):
        parse_nfe('<NFe><infNFe Id="NFe123"><ide/></infNFe></NFe>')


async def test_import_upserts_and_replaces_children(client, db):
    db.on("INSERT INTO nfe_document", [{"id": 31}])
    resp = await client.post("/api/nfe/import", json={"xml": NFE_PROC})
    assert resp.status_code == 200
    assert resp.json() == {
        "message": "XML importado com sucesso",
        "nfe_id": 31,
        "chave_nfe": CHAVE,
        "itens": 2,
        "pagamentos": 2,
    }
    upsert_sql, _ = db.executed("INSERT INTO nfe_document")[0]
    assert "ON CONFLICT (chave_nfe) DO UPDATE" in upsert_sql
    assert db.executed("DELETE FROM nfe_item")
    (_, items), = db.executed("INSERT INTO nfe_item")
    assert [i["nfe_id"] for i in items] == [31, 31]
    assert db.commits == 1


async def test_import_invalid_xml_returns_400(client, db):
    resp = await client.post("/api/nfe/import", json={"xml": "não é xml"})
    assert resp.status_code == 400
    assert not db.executed("nfe_document")
