"""Tests for the auto-parts function handlers."""

from datetime import datetime

import pytest

from src.schemas.client_schema import ClientInfo, VehicleInfo
from src.schemas.conversation_schema import DataCollectionStatus as Status
from src.schemas.function_schema import FieldStatus
from src.tools.autoparts import (
    determinar_proximo_paso,
    generar_cotizacion,
    guardar_info_cliente,
    guardar_info_vehiculo,
    guardar_informacion,
    recopilar_dato_cliente,
    validar_datos_vehiculo,
)
from tests.conftest import complete_client_info, make_context


class TestGuardarInformacion:
    @pytest.mark.asyncio
    async def test_saves_mixed_fields(self):
        args = {"pieza": "pastillas de freno", "marca": "toyota", "modelo": "Corolla", "año": 2018}
        result = await guardar_informacion(args, make_context())
        assert result.success is True
        assert result.client_info.pieza_necesaria == "pastillas de freno"
        assert result.client_info.vehiculo.marca == "Toyota"
        assert result.next_step == Status.COLLECTING_NAME
        assert result.data["updatedFields"] == ["refacción", "marca", "modelo", "año"]
        assert result.message == "✅ Información guardada: refacción, marca, modelo, año"

    @pytest.mark.asyncio
    async def test_merges_over_current_info(self):
        context = make_context(ClientInfo(nombre="Juan"))
        result = await guardar_informacion({"pieza": "filtro de aceite"}, context)
        assert result.client_info.nombre == "Juan"
        assert result.next_step == Status.COLLECTING_BRAND

    @pytest.mark.asyncio
    async def test_invalid_fields_dropped(self):
        result = await guardar_informacion({"nombre": "Juan", "año": 1985}, make_context())
        assert result.success is True
        assert result.client_info.vehiculo is None
        rejected = [o.field for o in result.field_outcomes if o.status == FieldStatus.REJECTED]
        assert rejected == ["año"]

    @pytest.mark.asyncio
    async def test_no_valid_fields_fails(self):
        result = await guardar_informacion({"nombre": "J", "año": 3000}, make_context())
        assert result.success is False
        assert result.error == "No se proporcionó información válida"
        assert result.client_info is None

    @pytest.mark.asyncio
    async def test_empty_args_fail(self):
        result = await guardar_informacion({}, make_context())
        assert result.success is False

    @pytest.mark.asyncio
    async def test_extra_inferred_as_model(self):
        result = await guardar_informacion({"marca": "Nissan", "extra": "Versa"}, make_context())
        assert result.client_info.vehiculo.modelo == "Versa"
        assert "modelo (inferido)" in result.data["updatedFields"]

    @pytest.mark.asyncio
    async def test_extra_ignored_when_model_known(self):
        result = await guardar_informacion({"modelo": "Sentra", "extra": "Versa"}, make_context())
        assert result.client_info.vehiculo.modelo == "Sentra"


class TestScopedSaves:
    @pytest.mark.asyncio
    async def test_client_save_ignores_vehicle_fields(self):
        result = await guardar_info_cliente({"nombre": "Juan", "marca": "Ford"}, make_context())
        assert result.success is True
        assert result.client_info.vehiculo is None

    @pytest.mark.asyncio
    async def test_client_save_failure_message(self):
        result = await guardar_info_cliente({"marca": "Ford"}, make_context())
        assert result.success is False
        assert result.error == "No se proporcionó información válida del cliente"

    @pytest.mark.asyncio
    async def test_vehicle_save(self):
        result = await guardar_info_vehiculo(
            {"marca": "vw", "modelo": "Jetta", "litraje": "25", "numeroSerie": "CBP123456"},
            make_context(),
        )
        vehiculo = result.client_info.vehiculo
        assert (vehiculo.marca, vehiculo.litraje, vehiculo.numero_serie) == (
            "Volkswagen",
            "2.5L",
            "CBP123456",
        )
        assert result.message.startswith("✅ Información del vehículo guardada")

    @pytest.mark.asyncio
    async def test_vehicle_save_ignores_name(self):
        result = await guardar_info_vehiculo({"nombre": "Juan"}, make_context())
        assert result.success is False
        assert result.error == "No se proporcionó información válida del vehículo"


class TestLegacySingleField:
    @pytest.mark.asyncio
    async def test_saves_one_field(self):
        result = await recopilar_dato_cliente({"campo": "año", "valor": "2018"}, make_context())
        assert result.success is True
        assert result.client_info.vehiculo.anio == 2018
        assert result.data["valor"] == 2018

    @pytest.mark.asyncio
    async def test_next_status_from_missing_field(self):
        context = make_context(ClientInfo(pieza_necesaria="filtro"))
        result = await recopilar_dato_cliente({"campo": "marca", "valor": "Kia"}, context)
        assert result.next_step == Status.COLLECTING_NAME

    @pytest.mark.asyncio
    async def test_missing_campo(self):
        result = await recopilar_dato_cliente({"valor": "Juan"}, make_context())
        assert result.error == "Campo requerido no especificado"

    @pytest.mark.asyncio
    async def test_empty_valor(self):
        result = await recopilar_dato_cliente({"campo": "nombre", "valor": "  "}, make_context())
        assert result.error == "Valor requerido no especificado o vacío"

    @pytest.mark.asyncio
    async def test_unknown_campo(self):
        result = await recopilar_dato_cliente({"campo": "color", "valor": "rojo"}, make_context())
        assert result.error == "Campo 'color' no reconocido"

    @pytest.mark.asyncio
    async def test_invalid_year_message(self):
        result = await recopilar_dato_cliente({"campo": "año", "valor": "1970"}, make_context())
        assert result.success is False
        assert result.error == "Año inválido"


class TestValidarDatosVehiculo:
    @pytest.mark.asyncio
    async def test_coherent_vehicle(self):
        args = {"vehiculo": {"marca": "Toyota", "modelo": "Corolla", "año": 2018, "litraje": "1.8L"}}
        result = await validar_datos_vehiculo(args, make_context())
        assert result.success is True
        assert result.client_info is None

    @pytest.mark.asyncio
    async def test_requires_core_fields(self):
        result = await validar_datos_vehiculo({"vehiculo": {"marca": "Toyota"}}, make_context())
        assert result.success is False
        assert "modelo" in result.error and "año" in result.error

    @pytest.mark.asyncio
    async def test_missing_vehicle(self):
        result = await validar_datos_vehiculo({}, make_context())
        assert result.success is False

    @pytest.mark.asyncio
    async def test_future_year(self):
        future = datetime.now().year + 2
        args = {"vehiculo": {"marca": "Toyota", "modelo": "Corolla", "año": future}}
        result = await validar_datos_vehiculo(args, make_context())
        assert result.success is False
        assert f"El año {future} es futuro" in result.error

    @pytest.mark.asyncio
    async def test_engine_out_of_range(self):
        args = {"vehiculo": {"marca": "Ford", "modelo": "F-150", "año": 2015, "litraje": "9.5L"}}
        result = await validar_datos_vehiculo(args, make_context())
        assert result.success is False
        assert "Litraje 9.5L fuera de rango común" in result.error


class TestGenerarCotizacion:
    @pytest.mark.asyncio
    async def test_quote_from_session_data(self):
        context = make_context(complete_client_info(), Status.DATA_COMPLETE)
        result = await generar_cotizacion({"clientInfo": {}}, context)
        assert result.success is True
        assert result.next_step == Status.GENERATING_QUOTE
        assert result.data["pieza"] == "pastillas de freno"
        assert result.data["referencia"].startswith("COT-")
        assert result.data["alternativas"] == []

    @pytest.mark.asyncio
    async def test_args_merge_over_session(self):
        context = make_context(ClientInfo(nombre="Juan"))
        args = {
            "clientInfo": {
                "piezaNecesaria": "filtro de aceite",
                "vehiculo": {"marca": "Honda", "modelo": "Civic", "año": 2020},
            },
            "includeAlternatives": True,
        }
        result = await generar_cotizacion(args, context)
        assert result.success is True
        assert result.data["cliente"] == "Juan"
        assert len(result.data["alternativas"]) == 3

    @pytest.mark.asyncio
    async def test_insufficient_info(self):
        result = await generar_cotizacion({"clientInfo": {"nombre": "Juan"}}, make_context())
        assert result.success is False
        assert result.error == "Información insuficiente para generar cotización"

    @pytest.mark.asyncio
    async def test_missing_client_info_arg(self):
        result = await generar_cotizacion({}, make_context(complete_client_info()))
        assert result.success is False

    @pytest.mark.asyncio
    async def test_invalid_client_info_arg(self):
        args = {"clientInfo": {"vehiculo": {"año": "dos mil"}}}
        result = await generar_cotizacion(args, make_context(complete_client_info()))
        assert result.success is False
        assert result.error.startswith("clientInfo inválido")


class TestDeterminarProximoPaso:
    @pytest.mark.asyncio
    async def test_reports_next_missing_field(self):
        args = {"clientInfo": {"nombre": "Juan", "vehiculo": {"marca": "Kia"}}}
        result = await determinar_proximo_paso(args, make_context())
        assert result.success is True
        assert result.next_step == Status.COLLECTING_PART
        assert result.data["nextField"] == "pieza"
        assert result.data["missingFields"] == ["pieza", "modelo", "año", "litraje", "numeroSerie"]
        assert result.data["progress"]["completed"] == 2

    @pytest.mark.asyncio
    async def test_complete(self):
        result = await determinar_proximo_paso({"clientInfo": {}}, make_context(complete_client_info()))
        assert result.next_step == Status.DATA_COMPLETE
        assert result.data == {"allFieldsComplete": True}

    @pytest.mark.asyncio
    async def test_uses_session_data_when_args_are_sparse(self):
        context = make_context(ClientInfo(nombre="Juan", pieza_necesaria="filtro", vehiculo=VehicleInfo(marca="Kia")))
        result = await determinar_proximo_paso({"clientInfo": {}}, context)
        assert result.data["nextField"] == "modelo"
